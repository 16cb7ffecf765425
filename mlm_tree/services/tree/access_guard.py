"""
Access guard module.

Decides whether a requester may view another node's subtree.
"""

import uuid

from mlm_tree.services.base_service import BaseService
from mlm_tree.utils.exceptions import ForbiddenError
from mlm_tree.utils.validation import parse_node_id


class AccessGuard(BaseService):
    """Strict-descendant checks."""

    async def is_descendant(
        self,
        ancestor_id: str | uuid.UUID,
        candidate_id: str | uuid.UUID,
    ) -> bool:
        """
        Check whether candidate lies strictly below ancestor.

        A node is not its own descendant. Malformed ids are never
        descendants.
        """
        ancestor = parse_node_id(ancestor_id)
        candidate = parse_node_id(candidate_id)
        if ancestor is None or candidate is None or ancestor == candidate:
            return False

        return await self._storage(
            self.node_repo.is_ancestor(ancestor, candidate), "descendant check"
        )

    async def ensure_can_view(
        self,
        requester_id: str | uuid.UUID,
        target_id: str | uuid.UUID,
    ) -> None:
        """
        Allow viewing one's own subtree or any subtree in one's downline.

        Raises:
            ForbiddenError: Target is neither the requester nor below it
        """
        requester = parse_node_id(requester_id)
        target = parse_node_id(target_id)
        if requester is not None and requester == target:
            return

        if not await self.is_descendant(requester_id, target_id):
            self.logger.warning(
                "Tree access denied",
                extra={
                    "requester_id": str(requester_id),
                    "target_id": str(target_id),
                },
            )
            raise ForbiddenError(
                "You do not have permission to view this user's tree"
            )
