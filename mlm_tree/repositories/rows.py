"""
Flat node rows returned by bulk traversals.

Traversal queries return plain rows instead of ORM entities so nothing is
added to the session identity map for large downlines.
"""

import uuid
from dataclasses import dataclass
from typing import Any

from mlm_tree.models.enums import Side
from mlm_tree.models.user import format_full_name


@dataclass(frozen=True, slots=True)
class NodeRow:
    """One node as seen by a traversal, with its distance from the start."""

    id: uuid.UUID
    email: str
    first_name: str | None
    last_name: str | None
    document_number: str | None
    referral_code: str
    referrer_code: str | None
    parent_id: uuid.UUID | None
    left_child_id: uuid.UUID | None
    right_child_id: uuid.UUID | None
    position: str | None
    is_active: bool
    depth: int = 0

    @classmethod
    def from_mapping(cls, row: Any) -> "NodeRow":
        """Build from a result row mapping."""
        return cls(
            id=row["id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            document_number=row["document_number"],
            referral_code=row["referral_code"],
            referrer_code=row["referrer_code"],
            parent_id=row["parent_id"],
            left_child_id=row["left_child_id"],
            right_child_id=row["right_child_id"],
            position=row["position"],
            is_active=row["is_active"],
            depth=row["depth"],
        )

    @property
    def full_name(self) -> str:
        """Display name."""
        return format_full_name(self.first_name, self.last_name)

    @property
    def side(self) -> Side | None:
        """Slot under the parent as enum."""
        return Side(self.position) if self.position else None

    def child_id(self, side: Side) -> uuid.UUID | None:
        """Return the node placed in the given slot."""
        return self.left_child_id if side is Side.LEFT else self.right_child_id


@dataclass(frozen=True, slots=True)
class SlotRow:
    """Slot occupancy of one node, used by the allocator's level scan."""

    id: uuid.UUID
    left_child_id: uuid.UUID | None
    right_child_id: uuid.UUID | None

    def child_id(self, side: Side) -> uuid.UUID | None:
        """Return the node placed in the given slot."""
        return self.left_child_id if side is Side.LEFT else self.right_child_id

    def is_free(self, side: Side) -> bool:
        """True if nothing has been placed in the slot yet."""
        return self.child_id(side) is None
