"""
Exception handling utilities.

Defines categorized exception types for the tree engine. Every error kind
carries the status code reported back to RPC callers.
"""

from sqlalchemy.exc import DBAPIError, OperationalError


class TreeError(Exception):
    """Base class for errors surfaced to callers."""

    status: int = 500
    code: str = "INTERNAL"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, int | str]:
        """Error payload for RPC responses."""
        return {
            "status": self.status,
            "code": self.code,
            "message": self.message,
        }


class InvalidArgumentError(TreeError):
    """Malformed id, out-of-range depth or limit, too short search term."""

    status = 400
    code = "INVALID_ARGUMENT"


class NotFoundError(TreeError):
    """Sponsor, root or node absent."""

    status = 404
    code = "NOT_FOUND"


class ForbiddenError(TreeError):
    """Access guard denial."""

    status = 403
    code = "FORBIDDEN"


class ConflictError(TreeError):
    """Slot claim collision after retries, duplicate registration data."""

    status = 409
    code = "CONFLICT"


class StorageTimeoutError(TreeError):
    """Storage call exceeded its time budget. Safe to retry."""

    status = 503
    code = "STORAGE_TIMEOUT"


# Exception categories based on handling strategy

# Reported to the caller as-is
CALLER_ERRORS = (
    InvalidArgumentError,
    NotFoundError,
    ForbiddenError,
    ConflictError,
    StorageTimeoutError,
)

# Must log but can continue - storage hiccups the caller may retry
MUST_LOG = (
    OperationalError,
    DBAPIError,
)


def is_caller_error(exc: Exception) -> bool:
    """
    Check if exception is a domain error meant for the caller.

    Args:
        exc: Exception to check

    Returns:
        True if exception should be reported with its own status
    """
    return isinstance(exc, CALLER_ERRORS)


def must_log(exc: Exception) -> bool:
    """
    Check if exception must be logged.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be logged
    """
    return isinstance(exc, MUST_LOG)
