"""
RPC client.

Sends a command to a sibling service over Redis lists and waits for the
reply on a per-request key.
"""

import asyncio
import math
import uuid
from typing import Any

from loguru import logger
from redis.asyncio import Redis

from mlm_tree.config.settings import settings
from mlm_tree.utils.rpc_envelope import RpcRequest, decode_response


class RpcCallError(Exception):
    """Remote side answered with an error, or did not answer in time."""

    def __init__(self, cmd: str, message: str, status: int | None = None) -> None:
        super().__init__(f"{cmd}: {message}")
        self.cmd = cmd
        self.status = status


class RpcClient:
    """Request/response client for one service queue."""

    def __init__(self, redis: Redis, request_queue: str) -> None:
        """
        Initialize RPC client.

        Args:
            redis: Redis client (decode_responses=True)
            request_queue: List the remote service consumes
        """
        self.redis = redis
        self.request_queue = request_queue

    async def send(
        self, cmd: str, data: dict[str, Any], timeout: float
    ) -> Any:
        """
        Send a command and wait for its reply.

        Args:
            cmd: Command name, e.g. 'membership.checkUserActiveMembership'
            data: Command payload
            timeout: Seconds to wait for the reply

        Returns:
            Reply data

        Raises:
            RpcCallError: Error reply or no reply within timeout
        """
        request_id = uuid.uuid4().hex
        request = RpcRequest(
            id=request_id,
            cmd=cmd,
            reply_to=f"{settings.rpc_reply_prefix}{request_id}",
            data=data,
        )

        # Deadline covers the push as well as the reply
        try:
            item = await asyncio.wait_for(
                self._exchange(request, timeout), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise RpcCallError(
                cmd, f"no reply within {timeout:g}s", status=504
            ) from e
        if item is None:
            raise RpcCallError(cmd, f"no reply within {timeout:g}s", status=504)

        _, raw = item
        response = decode_response(raw)
        if not response.get("ok"):
            error = response.get("error") or {}
            raise RpcCallError(
                cmd,
                str(error.get("message", "remote error")),
                status=error.get("status"),
            )
        return response.get("data")

    async def _exchange(
        self, request: RpcRequest, timeout: float
    ) -> tuple[str, str] | None:
        await self.redis.rpush(self.request_queue, request.encode())
        logger.debug(
            f"RPC request sent: {request.cmd}",
            extra={"request_id": request.id, "queue": self.request_queue},
        )

        # BLPOP takes whole seconds on older servers
        return await self.redis.blpop(
            [request.reply_to], timeout=max(1, math.ceil(timeout))
        )
