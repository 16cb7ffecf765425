"""
Input validation utilities.

Parsing of node ids, sides and referral codes coming from RPC payloads.
"""

import uuid

from mlm_tree.models.enums import Side
from mlm_tree.utils.exceptions import InvalidArgumentError


def parse_node_id(value: str | uuid.UUID | None) -> uuid.UUID | None:
    """
    Parse a node id.

    Args:
        value: UUID or its string form

    Returns:
        UUID, or None if the value is not a valid id
    """
    if isinstance(value, uuid.UUID):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None


def require_node_id(value: str | uuid.UUID | None, field: str = "id") -> uuid.UUID:
    """
    Parse a node id or fail.

    Raises:
        InvalidArgumentError: If the value is not a valid id
    """
    node_id = parse_node_id(value)
    if node_id is None:
        raise InvalidArgumentError(f"Invalid {field}: {value!r}")
    return node_id


def parse_side(value: Side | str | None) -> Side:
    """
    Parse the preferred side of a placement.

    None means LEFT. Strings are matched case-insensitively.

    Raises:
        InvalidArgumentError: If the value is not LEFT or RIGHT
    """
    if value is None:
        return Side.LEFT
    if isinstance(value, Side):
        return value
    if isinstance(value, str):
        try:
            return Side(value.strip().upper())
        except ValueError:
            pass
    raise InvalidArgumentError(
        f"Invalid position: {value!r}. Expected LEFT or RIGHT"
    )


def normalize_referral_code(code: str | None) -> str:
    """
    Normalize a referral code for lookup.

    Raises:
        InvalidArgumentError: If the code is empty
    """
    if not code or not isinstance(code, str) or not code.strip():
        raise InvalidArgumentError("Referral code is required")
    return code.strip().upper()
