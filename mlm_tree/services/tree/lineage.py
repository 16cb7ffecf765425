"""
Lineage module.

Walks the binary parent chain of a node.
"""

import uuid

from mlm_tree.config.tree_constants import DEFAULT_PARENT_CHAIN_LEVELS
from mlm_tree.repositories.rows import NodeRow
from mlm_tree.services.base_service import BaseService, log_operation
from mlm_tree.services.tree.schemas import AncestorEntry, ParentEntry
from mlm_tree.utils.validation import parse_node_id


def collect_active_ancestors(rows: list[NodeRow]) -> list[AncestorEntry]:
    """
    Turn a lineage (start node first) into active ancestor entries.

    Inactive ancestors are skipped, as are ancestors reached from a node
    without a side; the walk continues past both. Each entry carries the
    side of the node visited just before it.
    """
    entries: list[AncestorEntry] = []
    if len(rows) < 2:
        return entries

    previous = rows[0]
    for row in rows[1:]:
        arrived_from = previous.side
        previous = row

        if not row.is_active or arrived_from is None:
            continue

        entries.append(
            AncestorEntry(
                ancestor_id=str(row.id),
                name=row.full_name,
                email=row.email,
                side=arrived_from,
            )
        )

    return entries


class LineageWalker(BaseService):
    """Ancestor queries over the binary tree."""

    @log_operation
    async def ancestors(self, node_id: str | uuid.UUID) -> list[AncestorEntry]:
        """
        Get active ancestors up to the root, nearest first.

        Args:
            node_id: Starting node

        Returns:
            Ancestor entries; empty for a malformed id, missing node or root
        """
        parsed = parse_node_id(node_id)
        if parsed is None:
            self.logger.warning(f"Invalid user id for ancestors: {node_id!r}")
            return []

        rows = await self._storage(
            self.node_repo.get_lineage_rows(parsed), "lineage fetch"
        )
        if not rows:
            self.logger.warning(f"User not found for ancestors: {parsed}")
            return []

        entries = collect_active_ancestors(rows)

        self.logger.debug(
            "Ancestors collected",
            extra={
                "user_id": str(parsed),
                "chain_length": len(rows) - 1,
                "active_ancestors": len(entries),
            },
        )
        return entries

    @log_operation
    async def parent_chain(
        self,
        node_id: str | uuid.UUID,
        max_levels: int = DEFAULT_PARENT_CHAIN_LEVELS,
    ) -> list[ParentEntry]:
        """
        Get at most max_levels ancestors, nearest first, active or not.

        Args:
            node_id: Starting node
            max_levels: Maximum number of ancestors

        Returns:
            Parent entries; empty for a malformed id, missing node or root
        """
        parsed = parse_node_id(node_id)
        if parsed is None or max_levels <= 0:
            return []

        rows = await self._storage(
            self.node_repo.get_lineage_rows(parsed, max_levels=max_levels),
            "parent chain fetch",
        )

        return [
            ParentEntry(
                ancestor_id=str(row.id),
                name=row.full_name,
                email=row.email,
            )
            for row in rows[1:max_levels + 1]
        ]
