"""
Model enumerations.

Shared enums for the tree models.
"""

from enum import StrEnum


class Side(StrEnum):
    """Slot a node occupies under its binary parent."""

    LEFT = "LEFT"
    RIGHT = "RIGHT"

    def opposite(self) -> "Side":
        """Return the other slot."""
        return Side.RIGHT if self is Side.LEFT else Side.LEFT

    @property
    def child_column(self) -> str:
        """Name of the parent's column that holds this slot."""
        return "left_child_id" if self is Side.LEFT else "right_child_id"
