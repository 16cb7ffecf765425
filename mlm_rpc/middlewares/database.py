"""
Database middleware.

Opens one session per request, commits when the handler succeeds and
rolls back when it raises.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger
from sqlalchemy.exc import DatabaseError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker

from mlm_tree.utils.rpc_envelope import RpcRequest


class DatabaseMiddleware:
    """Database middleware - provides a live session to handlers."""

    def __init__(self, session_pool: async_sessionmaker) -> None:
        """
        Initialize database middleware.

        Args:
            session_pool: SQLAlchemy async session maker
        """
        self.session_pool = session_pool

    async def __call__(
        self,
        handler: Callable[[RpcRequest, dict[str, Any]], Awaitable[Any]],
        request: RpcRequest,
        data: dict[str, Any],
    ) -> Any:
        """Execute middleware."""
        async with self.session_pool() as session:
            data["session"] = session
            try:
                result = await handler(request, data)
                await session.commit()
                return result
            except (OperationalError, InterfaceError, DatabaseError) as e:
                await session.rollback()
                logger.error(
                    f"Database error in handler: {e}",
                    extra={"cmd": request.cmd, "error_type": type(e).__name__},
                )
                raise
            except Exception:
                await session.rollback()
                raise
