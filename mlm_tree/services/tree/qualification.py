"""
Leg qualification module.

Combines tree structure with membership status: which ancestors hold an
active membership, and whether a leg contains a qualifying referral.
"""

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from mlm_tree.models.enums import Side
from mlm_tree.repositories.node_repository import NodeRepository
from mlm_tree.services.base_service import BaseService, log_operation
from mlm_tree.services.membership_client import MembershipClient
from mlm_tree.services.tree.lineage import LineageWalker
from mlm_tree.services.tree.schemas import AncestorEntry
from mlm_tree.utils.exceptions import NotFoundError
from mlm_tree.utils.validation import parse_side, require_node_id


class LegQualification(BaseService):
    """Membership-aware queries over ancestors and legs."""

    def __init__(
        self,
        session: AsyncSession,
        membership: MembershipClient,
        node_repo: NodeRepository | None = None,
        log: Any = None,
    ) -> None:
        """
        Initialize leg qualification.

        Args:
            session: Async database session
            membership: Membership service client
            node_repo: Repository override
            log: loguru-compatible logger
        """
        super().__init__(session, node_repo, log)
        self.membership = membership
        self.lineage = LineageWalker(session, self.node_repo, log)

    @log_operation
    async def active_ancestors_with_membership(
        self, node_id: str | uuid.UUID
    ) -> list[AncestorEntry]:
        """
        Get active ancestors that hold an active membership.

        Args:
            node_id: Starting node

        Returns:
            Ancestor entries, nearest first

        Raises:
            InvalidArgumentError: Malformed id
        """
        parsed = require_node_id(node_id, "user id")

        ancestors = await self.lineage.ancestors(parsed)
        if not ancestors:
            self.logger.info(f"User {parsed} has no ancestors")
            return []

        flags = await self.membership.check_active_memberships(
            entry.ancestor_id for entry in ancestors
        )
        qualified = [entry for entry in ancestors if flags.get(entry.ancestor_id)]

        self.logger.info(
            "Active ancestors with membership resolved",
            extra={
                "user_id": str(parsed),
                "ancestors": len(ancestors),
                "with_membership": len(qualified),
            },
        )
        return qualified

    @log_operation
    async def leg_has_qualified_referral(
        self, node_id: str | uuid.UUID, side: Side | str | None
    ) -> bool:
        """
        Check whether a leg holds a member sponsored by the node.

        A qualifying member is active, sits anywhere in the leg under the
        given side, was registered with the node's referral code and holds
        an active membership.

        Args:
            node_id: Node whose leg is inspected
            side: LEFT or RIGHT

        Returns:
            True if at least one qualifying member exists

        Raises:
            InvalidArgumentError: Malformed id or side
            NotFoundError: Node does not exist
        """
        parsed = require_node_id(node_id, "user id")
        leg_side = parse_side(side)

        node = await self._storage(
            self.node_repo.get_by_id(parsed), "qualification node fetch"
        )
        if node is None:
            raise NotFoundError(f"User {parsed} not found")

        leg_root_id = node.child_id(leg_side)
        if leg_root_id is None:
            return False

        leg_rows = await self._storage(
            self.node_repo.get_subtree_rows(leg_root_id, active_only=True),
            "leg fetch",
        )
        sponsored = [
            str(row.id) for row in leg_rows
            if row.referrer_code == node.referral_code
        ]
        if not sponsored:
            return False

        flags = await self.membership.check_active_memberships(sponsored)
        qualified = any(flags.values())

        self.logger.debug(
            "Leg qualification checked",
            extra={
                "user_id": str(parsed),
                "side": leg_side.value,
                "leg_size": len(leg_rows),
                "sponsored": len(sponsored),
                "qualified": qualified,
            },
        )
        return qualified
