"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from mlm_tree.models.base import Base
from mlm_tree.models.enums import Side
from mlm_tree.models.user import User

__all__ = [
    "Base",
    "Side",
    "User",
]
