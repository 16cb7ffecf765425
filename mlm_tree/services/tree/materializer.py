"""
Subtree materialization module.

Fetches a bounded subtree in one query and assembles it in memory.
"""

import uuid

from mlm_tree.config.tree_constants import MAX_TREE_DEPTH, MIN_TREE_DEPTH
from mlm_tree.models.enums import Side
from mlm_tree.repositories.rows import NodeRow
from mlm_tree.services.base_service import BaseService, log_operation
from mlm_tree.services.tree.schemas import TreeChildren, TreeNode
from mlm_tree.utils.exceptions import InvalidArgumentError, NotFoundError
from mlm_tree.utils.validation import require_node_id


def validate_depth(max_depth: int) -> int:
    """
    Check the requested depth bound.

    Raises:
        InvalidArgumentError: Depth outside [MIN_TREE_DEPTH, MAX_TREE_DEPTH]
    """
    if (
        isinstance(max_depth, bool)
        or not isinstance(max_depth, int)
        or not MIN_TREE_DEPTH <= max_depth <= MAX_TREE_DEPTH
    ):
        raise InvalidArgumentError(
            f"Depth must be between {MIN_TREE_DEPTH} and {MAX_TREE_DEPTH}"
        )
    return max_depth


def assemble_tree(
    root_id: uuid.UUID, rows: list[NodeRow], max_depth: int
) -> TreeNode | None:
    """
    Assemble nested nodes from flat rows.

    Builds bottom-up (deepest rows first) so each node is created once
    with its finished children; no recursion.

    Args:
        root_id: Root of the subtree
        rows: Rows of the subtree with depth relative to the root
        max_depth: Nodes at this depth are leaves

    Returns:
        Root node, or None if the root row is missing
    """
    by_id = {row.id: row for row in rows if row.depth <= max_depth}
    built: dict[uuid.UUID, TreeNode] = {}

    for row in sorted(by_id.values(), key=lambda r: r.depth, reverse=True):
        fields = {
            "id": str(row.id),
            "email": row.email,
            "referral_code": row.referral_code,
            "position": row.side,
            "is_active": row.is_active,
            "full_name": row.full_name,
            "depth": row.depth,
        }

        if row.depth < max_depth:
            children: dict[str, TreeNode] = {}
            for side in (Side.LEFT, Side.RIGHT):
                child_id = row.child_id(side)
                # The slot points at a child only if the child was fetched
                # under this parent.
                if child_id in built and by_id[child_id].parent_id == row.id:
                    children[side.value.lower()] = built[child_id]
            if children:
                fields["children"] = TreeChildren(**children)

        built[row.id] = TreeNode(**fields)

    return built.get(root_id)


class SubtreeMaterializer(BaseService):
    """Builds bounded nested views of the tree."""

    @log_operation
    async def build_tree(
        self, root_id: str | uuid.UUID, max_depth: int
    ) -> TreeNode:
        """
        Build the subtree below a node.

        Args:
            root_id: Subtree root
            max_depth: Levels below the root to include (1-5)

        Returns:
            Nested tree, root at depth 0

        Raises:
            InvalidArgumentError: Malformed id or depth out of range
            NotFoundError: Root does not exist
        """
        node_id = require_node_id(root_id, "user id")
        validate_depth(max_depth)

        rows = await self._storage(
            self.node_repo.get_subtree_rows(node_id, max_depth=max_depth),
            "subtree fetch",
        )

        tree = assemble_tree(node_id, rows, max_depth)
        if tree is None:
            raise NotFoundError(f"User {node_id} not found")

        self.logger.debug(
            "Subtree materialized",
            extra={
                "root_id": str(node_id),
                "max_depth": max_depth,
                "nodes": len(rows),
            },
        )
        return tree
