"""
Timeout helpers.

Every storage and collaborator call is bounded; a timeout becomes a
StorageTimeoutError unless the caller asks for another error type.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from loguru import logger

from mlm_tree.utils.exceptions import StorageTimeoutError, TreeError


T = TypeVar("T")


async def bounded(
    awaitable: Awaitable[T],
    timeout: float,
    operation: str,
    error_cls: type[TreeError] = StorageTimeoutError,
) -> T:
    """
    Await with an upper time bound.

    Args:
        awaitable: Storage or collaborator call
        timeout: Seconds before giving up
        operation: Name used in logs and in the error message
        error_cls: Error raised on timeout

    Returns:
        Result of the awaitable

    Raises:
        TreeError: error_cls instance if the call timed out
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning(
            f"Timed out: {operation}",
            extra={"operation": operation, "timeout_seconds": timeout},
        )
        raise error_cls(
            f"{operation} timed out after {timeout:g}s"
        ) from e
