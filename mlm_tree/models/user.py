"""
User model.

A registered member and its node in the binary placement tree.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from mlm_tree.config.tree_constants import UNNAMED_MEMBER
from mlm_tree.models.base import Base
from mlm_tree.models.enums import Side


class User(Base):
    """
    User entity - one node of the binary tree.

    Attributes:
        id: Primary key, generated before insert
        email: Login email (lowercase)
        first_name: First name
        last_name: Last name
        document_number: Identity document number
        referral_code: Unique uppercase code used to address placements
        referrer_code: Sponsor code given at registration
        parent_id: Binary parent (None only for the root)
        left_child_id: Node placed in the LEFT slot (write-once)
        right_child_id: Node placed in the RIGHT slot (write-once)
        position: Slot this node occupies under its parent
        is_active: Excludes the node from most read-side queries
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint(
            "parent_id", "position", name="uq_users_parent_position"
        ),
        CheckConstraint(
            "position IN ('LEFT', 'RIGHT')", name="check_user_position"
        ),
        CheckConstraint(
            "(parent_id IS NULL) = (position IS NULL)",
            name="check_user_parent_has_position",
        ),
        CheckConstraint(
            "left_child_id IS NULL OR left_child_id <> id",
            name="check_user_left_child_not_self",
        ),
        CheckConstraint(
            "right_child_id IS NULL OR right_child_id <> id",
            name="check_user_right_child_not_self",
        ),
        CheckConstraint(
            "left_child_id IS NULL OR right_child_id IS NULL "
            "OR left_child_id <> right_child_id",
            name="check_user_children_distinct",
        ),
        Index("ix_users_referrer_code_active", "referrer_code", "is_active"),
        # At most one root
        Index(
            "uq_users_single_root",
            text("(parent_id IS NULL)"),
            unique=True,
            postgresql_where=text("parent_id IS NULL"),
        ),
    )

    # Primary key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )

    # Identity
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    first_name: Mapped[str] = mapped_column(
        String(100), nullable=False, default=""
    )
    last_name: Mapped[str] = mapped_column(
        String(100), nullable=False, default=""
    )
    document_number: Mapped[str | None] = mapped_column(
        String(20), nullable=True
    )

    # Referral
    referral_code: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )
    referrer_code: Mapped[str | None] = mapped_column(
        String(20), nullable=True, index=True
    )

    # Binary tree
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True
    )
    # Slot reservations: claimed for an id that may not have a row yet
    left_child_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, nullable=True, unique=True
    )
    right_child_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, nullable=True, unique=True
    )
    position: Mapped[str | None] = mapped_column(
        String(5), nullable=True, index=True
    )

    # Status flags
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def side(self) -> Side | None:
        """Slot under the parent as enum (None for the root)."""
        return Side(self.position) if self.position else None

    @property
    def full_name(self) -> str:
        """Display name."""
        return format_full_name(self.first_name, self.last_name)

    def child_id(self, side: Side) -> uuid.UUID | None:
        """Return the node placed in the given slot."""
        return self.left_child_id if side is Side.LEFT else self.right_child_id

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, referral_code={self.referral_code!r}, "
            f"parent_id={self.parent_id}, position={self.position})>"
        )


def format_full_name(first_name: str | None, last_name: str | None) -> str:
    """Join name parts, falling back to a placeholder."""
    full_name = f"{first_name or ''} {last_name or ''}".strip()
    return full_name or UNNAMED_MEMBER
