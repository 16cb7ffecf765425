"""
Leg query module.

Direct children, leg-scoped descendant sets and depth checks.
"""

import uuid

from mlm_tree.models.enums import Side
from mlm_tree.services.base_service import BaseService, log_operation
from mlm_tree.utils.validation import parse_node_id


class LegQueryEngine(BaseService):
    """Queries scoped to one node's legs."""

    async def direct_referrals(self, node_id: str | uuid.UUID) -> list[str]:
        """
        Get active nodes placed directly under a node.

        Args:
            node_id: Parent node

        Returns:
            0-2 ids, LEFT first; empty for a malformed id
        """
        parsed = parse_node_id(node_id)
        if parsed is None:
            self.logger.warning(f"Invalid user id for direct referrals: {node_id!r}")
            return []

        child_ids = await self._storage(
            self.node_repo.get_child_ids(parsed, active_only=True),
            "direct referrals fetch",
        )
        return [str(child_id) for child_id in child_ids]

    async def leg_root(
        self, node_id: str | uuid.UUID, side: Side
    ) -> uuid.UUID | None:
        """
        Get the immediate child heading one leg.

        Returns:
            Child id, or None if the slot is empty or the node is missing
        """
        parsed = parse_node_id(node_id)
        if parsed is None:
            return None

        slots = await self._storage(
            self.node_repo.get_slot_rows([parsed]), "leg root fetch"
        )
        row = slots.get(parsed)
        return row.child_id(side) if row is not None else None

    @log_operation
    async def descendants_in_leg(self, leg_root_id: str | uuid.UUID) -> list[str]:
        """
        Get the leg root and every node below it.

        Args:
            leg_root_id: Immediate child heading the leg

        Returns:
            IDs, leg root first; empty for a malformed or missing id
        """
        parsed = parse_node_id(leg_root_id)
        if parsed is None:
            self.logger.warning(f"Invalid leg root id: {leg_root_id!r}")
            return []

        ids = await self._storage(
            self.node_repo.get_subtree_ids(parsed), "leg descendants fetch"
        )
        return [str(node_id) for node_id in ids]

    @log_operation
    async def min_depth_satisfied(
        self, node_id: str | uuid.UUID, min_levels: int
    ) -> bool:
        """
        Check that a node's downline reaches at least min_levels levels.

        Args:
            node_id: Node to check
            min_levels: Required number of levels below the node

        Returns:
            True if min_levels <= 0 or the downline is deep enough;
            False for a malformed or missing node
        """
        if min_levels <= 0:
            return True

        parsed = parse_node_id(node_id)
        if parsed is None:
            self.logger.warning(f"Invalid user id for depth check: {node_id!r}")
            return False

        levels = await self._storage(
            self.node_repo.get_max_descendant_depth(parsed), "depth check"
        )
        if levels is None:
            self.logger.warning(f"User not found for depth check: {parsed}")
            return False

        self.logger.debug(
            "Downline depth measured",
            extra={
                "user_id": str(parsed),
                "levels": levels,
                "required": min_levels,
            },
        )
        return levels >= min_levels
