"""
RPC Initialization - Middlewares Module.

Module: middlewares.py
Registers all middlewares in the correct order.
Order is critical for proper request processing.
"""

from sqlalchemy.ext.asyncio import async_sessionmaker

from mlm_rpc.middlewares.database import DatabaseMiddleware
from mlm_rpc.middlewares.error_handler import ErrorHandlerMiddleware
from mlm_rpc.middlewares.logger_middleware import LoggerMiddleware
from mlm_rpc.router import CommandRouter


def register_middlewares(
    router: CommandRouter, session_pool: async_sessionmaker
) -> None:
    """
    Register all middlewares.

    Middleware order is critical:
    1. Logger (sees the final result, including error results)
    2. Error handler (turns exceptions into error results)
    3. Database (rolls back before the error handler sees the exception)

    Args:
        router: Root router
        session_pool: SQLAlchemy async session maker
    """
    router.middleware(LoggerMiddleware())
    router.middleware(ErrorHandlerMiddleware())
    router.middleware(DatabaseMiddleware(session_pool=session_pool))
