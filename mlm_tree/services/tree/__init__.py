"""
Tree services package.

Contains the components of the binary tree engine:
- slot_allocator: placement of new members under a sponsor
- materializer: bounded nested subtree views
- lineage: ancestors and parent chains
- access_guard: descendant checks for view permissions
- leg_query: children, leg descendants and depth checks
- search: substring search over a downline
- qualification: membership-aware leg checks
"""

from mlm_tree.services.tree.access_guard import AccessGuard
from mlm_tree.services.tree.leg_query import LegQueryEngine
from mlm_tree.services.tree.lineage import LineageWalker
from mlm_tree.services.tree.materializer import SubtreeMaterializer
from mlm_tree.services.tree.qualification import LegQualification
from mlm_tree.services.tree.search import DownlineSearch
from mlm_tree.services.tree.slot_allocator import SlotAllocator


__all__ = [
    "AccessGuard",
    "DownlineSearch",
    "LegQualification",
    "LegQueryEngine",
    "LineageWalker",
    "SlotAllocator",
    "SubtreeMaterializer",
]
