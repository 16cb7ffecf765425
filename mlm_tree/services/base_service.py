"""
Base service class.

Provides common functionality for tree services: session and repository
wiring, an injected logger bound to the service name, and timing/logging
decorators.
"""

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_tree.config.settings import settings
from mlm_tree.repositories.node_repository import NodeRepository
from mlm_tree.utils.timeouts import bounded


# Type variable for generic decorator return types
T = TypeVar("T")


class BaseService:
    """
    Base service class.

    Provides common functionality for all service classes:
    - Session and node repository wiring
    - Logging with bound service context (logger may be injected)
    - Bounded storage calls
    - Transaction helpers
    """

    def __init__(
        self,
        session: AsyncSession,
        node_repo: NodeRepository | None = None,
        log: Any = None,
    ) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
            node_repo: Repository override (defaults to one on the session)
            log: loguru-compatible logger (defaults to the global logger)
        """
        self.session = session
        self.node_repo = node_repo if node_repo is not None else NodeRepository(session)
        self.logger = (log if log is not None else logger).bind(
            service=self.__class__.__name__
        )
        self.storage_timeout = settings.storage_timeout_seconds

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback current transaction."""
        await self.session.rollback()

    async def _storage(self, awaitable: Any, operation: str, **kwargs: Any) -> Any:
        """Await a repository call within the storage time budget."""
        return await bounded(awaitable, self.storage_timeout, operation, **kwargs)


def transaction(func: Callable[..., T]) -> Callable[..., T]:
    """
    Run a service method as one unit of work on the service session.

    Slot claims and node inserts made by the method are committed
    together; any exception rolls all of them back and propagates.
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        try:
            result = await func(self, *args, **kwargs)
            await self.commit()
            return result
        except Exception as e:
            await self.rollback()
            self.logger.warning(
                f"Transaction rolled back in {func.__name__}",
                extra={
                    "error": str(e),
                    "function": func.__name__,
                },
            )
            raise

    return wrapper


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """Log entry at DEBUG and the outcome with its duration."""
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        start_time = time.monotonic()

        self.logger.debug(
            f"Starting {func.__name__}",
            extra={
                "function": func.__name__,
                "args_count": len(args),
                "kwargs_keys": list(kwargs.keys()),
            },
        )

        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            duration = time.monotonic() - start_time
            self.logger.warning(
                f"Failed {func.__name__}: {type(e).__name__}: {e}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": round(duration, 3),
                    "error": str(e),
                    "success": False,
                },
            )
            raise

        duration = time.monotonic() - start_time
        self.logger.info(
            f"Completed {func.__name__}",
            extra={
                "function": func.__name__,
                "duration_seconds": round(duration, 3),
                "success": True,
            },
        )
        return result

    return wrapper
