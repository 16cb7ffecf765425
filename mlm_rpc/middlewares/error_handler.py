"""
Global Error Handler Middleware.

Turns every exception raised while handling a request into an error
payload. Domain errors keep their status; anything unexpected is logged
with its traceback and reported as a generic 500.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger
from pydantic import ValidationError

from mlm_tree.utils.exceptions import TreeError, must_log
from mlm_tree.utils.rpc_envelope import RpcRequest


@dataclass(frozen=True, slots=True)
class RpcFailure:
    """Error result returned in place of a handler result."""

    status: int
    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Error payload for the response envelope."""
        return {"status": self.status, "code": self.code, "message": self.message}


def describe_validation_error(error: ValidationError) -> str:
    """First validation problem, readable by the caller."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "payload"
    return f"Invalid {field}: {first.get('msg', 'invalid value')}"


class ErrorHandlerMiddleware:
    """
    Global error handler middleware.

    - TreeError: reported with its status, logged at INFO (4xx) or WARNING
    - Payload validation errors: 400
    - Storage failures: 503, logged at ERROR
    - Anything else: 500 with a generic message, logged with traceback
    """

    async def __call__(
        self,
        handler: Callable[[RpcRequest, dict[str, Any]], Awaitable[Any]],
        request: RpcRequest,
        data: dict[str, Any],
    ) -> Any:
        """Execute middleware."""
        try:
            return await handler(request, data)
        except TreeError as e:
            log = logger.info if e.status < 500 else logger.warning
            log(
                f"{request.cmd} failed: {e.message}",
                extra={"request_id": request.id, "status": e.status, "code": e.code},
            )
            return RpcFailure(status=e.status, code=e.code, message=e.message)
        except ValidationError as e:
            message = describe_validation_error(e)
            logger.info(
                f"{request.cmd} rejected: {message}",
                extra={"request_id": request.id},
            )
            return RpcFailure(status=400, code="INVALID_ARGUMENT", message=message)
        except Exception as e:
            if must_log(e):
                logger.error(
                    f"Storage failure in {request.cmd}: {e}",
                    extra={"request_id": request.id, "error_type": type(e).__name__},
                )
                return RpcFailure(
                    status=503,
                    code="STORAGE_UNAVAILABLE",
                    message="Storage is temporarily unavailable",
                )

            logger.exception(
                f"Unhandled exception in {request.cmd}: {e}",
                extra={"request_id": request.id},
            )
            return RpcFailure(
                status=500,
                code="INTERNAL",
                message="Internal server error",
            )
