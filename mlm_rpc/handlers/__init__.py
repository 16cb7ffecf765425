"""
Command handlers.

Each module exposes a router; register_all_handlers merges them.
"""

from mlm_rpc.handlers import placement, qualification, tree


__all__ = [
    "placement",
    "qualification",
    "tree",
]
