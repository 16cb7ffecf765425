"""
Logger middleware.

Tags every log record of a request with its id and command, and logs
the request outcome with its duration.
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from mlm_rpc.middlewares.error_handler import RpcFailure
from mlm_tree.utils.rpc_envelope import RpcRequest


class LoggerMiddleware:
    """Request logging middleware."""

    async def __call__(
        self,
        handler: Callable[[RpcRequest, dict[str, Any]], Awaitable[Any]],
        request: RpcRequest,
        data: dict[str, Any],
    ) -> Any:
        """Execute middleware."""
        start_time = time.monotonic()

        with logger.contextualize(request_id=request.id, cmd=request.cmd):
            data["logger"] = logger.bind(request_id=request.id)
            logger.debug(f"Request received: {request.cmd}")

            result = await handler(request, data)

            duration_ms = int((time.monotonic() - start_time) * 1000)
            if isinstance(result, RpcFailure):
                logger.info(
                    f"Request failed: {request.cmd} ({result.status})",
                    extra={"duration_ms": duration_ms},
                )
            else:
                logger.info(
                    f"Request handled: {request.cmd}",
                    extra={"duration_ms": duration_ms},
                )
            return result
