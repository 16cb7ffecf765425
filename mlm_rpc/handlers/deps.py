"""Service construction from the request context."""

from typing import Any

from mlm_tree.services.tree_service import TreeService


def tree_service(data: dict[str, Any]) -> TreeService:
    """Tree service bound to the request session."""
    return TreeService(
        data["session"],
        membership=data.get("membership"),
        log=data.get("logger"),
    )
