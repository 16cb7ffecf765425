"""
Repositories.

Data access layer. Only repositories issue SQL.
"""

from mlm_tree.repositories.node_repository import NodeRepository
from mlm_tree.repositories.rows import NodeRow, SlotRow

__all__ = [
    "NodeRepository",
    "NodeRow",
    "SlotRow",
]
