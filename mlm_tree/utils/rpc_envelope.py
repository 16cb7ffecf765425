"""
Request/response envelopes.

JSON messages exchanged over Redis lists between services:

    request:  {"id": str, "cmd": str, "data": {...}, "reply_to": str}
    success:  {"id": str, "ok": true, "data": ...}
    failure:  {"id": str, "ok": false,
               "error": {"status": int, "code": str, "message": str}}
"""

import json
from dataclasses import dataclass, field
from typing import Any


class EnvelopeError(ValueError):
    """Message could not be decoded."""


@dataclass(frozen=True, slots=True)
class RpcRequest:
    """Decoded request."""

    id: str
    cmd: str
    reply_to: str
    data: dict[str, Any] = field(default_factory=dict)

    def encode(self) -> str:
        """Serialize to JSON."""
        return json.dumps(
            {"id": self.id, "cmd": self.cmd, "data": self.data, "reply_to": self.reply_to}
        )

    @classmethod
    def decode(cls, raw: str | bytes) -> "RpcRequest":
        """
        Parse a raw request.

        Raises:
            EnvelopeError: Not JSON or required keys missing
        """
        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise EnvelopeError(f"Request is not valid JSON: {e}") from e

        if not isinstance(message, dict):
            raise EnvelopeError("Request must be a JSON object")

        request_id = message.get("id")
        cmd = message.get("cmd")
        reply_to = message.get("reply_to")
        data = message.get("data") or {}
        if not isinstance(request_id, str) or not isinstance(cmd, str):
            raise EnvelopeError("Request requires string 'id' and 'cmd'")
        if not isinstance(reply_to, str) or not reply_to:
            raise EnvelopeError("Request requires 'reply_to'")
        if not isinstance(data, dict):
            raise EnvelopeError("Request 'data' must be an object")

        return cls(id=request_id, cmd=cmd, reply_to=reply_to, data=data)


def encode_success(request_id: str, data: Any) -> str:
    """Serialize a successful response."""
    return json.dumps({"id": request_id, "ok": True, "data": data})


def encode_failure(request_id: str, error: dict[str, Any]) -> str:
    """Serialize a failed response."""
    return json.dumps({"id": request_id, "ok": False, "error": error})


def decode_response(raw: str | bytes) -> dict[str, Any]:
    """
    Parse a raw response.

    Raises:
        EnvelopeError: Not a JSON object with an 'ok' flag
    """
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise EnvelopeError(f"Response is not valid JSON: {e}") from e

    if not isinstance(message, dict) or "ok" not in message:
        raise EnvelopeError("Response must be an object with an 'ok' flag")
    return message
