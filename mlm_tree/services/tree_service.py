"""
Tree service (facade).

Composes the tree components for one request session. Components share
the session, the node repository and the injected logger.
"""

import time
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from mlm_tree.config.tree_constants import (
    DEFAULT_PARENT_CHAIN_LEVELS,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SEARCH_PAGE,
    DEFAULT_TREE_DEPTH,
)
from mlm_tree.models.enums import Side
from mlm_tree.repositories.node_repository import NodeRepository
from mlm_tree.services.base_service import BaseService, log_operation, transaction
from mlm_tree.services.membership_client import MembershipClient
from mlm_tree.services.tree.access_guard import AccessGuard
from mlm_tree.services.tree.leg_query import LegQueryEngine
from mlm_tree.services.tree.lineage import LineageWalker
from mlm_tree.services.tree.materializer import SubtreeMaterializer, validate_depth
from mlm_tree.services.tree.qualification import LegQualification
from mlm_tree.services.tree.schemas import (
    AncestorEntry,
    ParentEntry,
    Placement,
    SearchPage,
    TreeMetadata,
    TreeResponse,
)
from mlm_tree.services.tree.search import DownlineSearch
from mlm_tree.services.tree.slot_allocator import SlotAllocator
from mlm_tree.utils.exceptions import NotFoundError
from mlm_tree.utils.validation import require_node_id


class TreeService(BaseService):
    """
    Tree service facade.

    Delegates to:
    - SlotAllocator: placement of new members
    - SubtreeMaterializer: bounded nested views
    - LineageWalker: ancestors and parent chains
    - AccessGuard: view permissions
    - LegQueryEngine: children, legs and depth checks
    - DownlineSearch: substring search over the downline
    - LegQualification: membership-aware leg checks
    """

    def __init__(
        self,
        session: AsyncSession,
        membership: MembershipClient | None = None,
        node_repo: NodeRepository | None = None,
        log: Any = None,
    ) -> None:
        """
        Initialize tree service.

        Args:
            session: Async database session
            membership: Membership client; qualification queries need it
            node_repo: Repository override
            log: loguru-compatible logger
        """
        super().__init__(session, node_repo, log)
        repo = self.node_repo

        self.allocator = SlotAllocator(session, repo, log)
        self.materializer = SubtreeMaterializer(session, repo, log)
        self.lineage = LineageWalker(session, repo, log)
        self.guard = AccessGuard(session, repo, log)
        self.legs = LegQueryEngine(session, repo, log)
        self.downline = DownlineSearch(session, repo, log)
        self.qualification = (
            LegQualification(session, membership, repo, log)
            if membership is not None
            else None
        )

    # ── Placement ────────────────────────────────────────────────────

    @transaction
    async def allocate_slot(
        self,
        sponsor_code: str,
        preferred_side: Side | str | None,
        node_id: str | uuid.UUID,
    ) -> Placement:
        """
        Reserve a slot for a node that is registered elsewhere.

        The reservation is committed; the node row may be inserted later.

        Raises:
            InvalidArgumentError: Malformed id, side or sponsor code
            NotFoundError: Sponsor missing or inactive
            ConflictError: Slot claims kept colliding
        """
        return await self.allocator.allocate(
            sponsor_code,
            preferred_side,
            node_id=require_node_id(node_id, "user id"),
        )

    # ── Subtree views ────────────────────────────────────────────────

    @log_operation
    async def get_user_tree(
        self,
        requester_id: str | uuid.UUID,
        root_id: str | uuid.UUID | None = None,
        depth: int = DEFAULT_TREE_DEPTH,
    ) -> TreeResponse:
        """
        Get a subtree view for a logged-in member.

        Args:
            requester_id: Logged-in member
            root_id: Subtree to view (defaults to the requester's own)
            depth: Levels below the root (1-5)

        Returns:
            Tree plus navigation metadata

        Raises:
            InvalidArgumentError: Malformed ids or depth out of range
            NotFoundError: Target does not exist
            ForbiddenError: Target is outside the requester's downline
        """
        start_time = time.monotonic()

        target = require_node_id(root_id or requester_id, "user id")
        requester = require_node_id(requester_id, "current user id")
        validate_depth(depth)

        target_node = await self._storage(
            self.node_repo.get_by_id(target), "target fetch"
        )
        if target_node is None:
            raise NotFoundError(f"User {target} not found")

        if target != requester:
            await self.guard.ensure_can_view(requester, target)

        tree = await self.materializer.build_tree(target, depth)

        can_go_up = target != requester and target_node.parent_id is not None
        metadata: dict[str, Any] = {
            "query_duration_ms": int((time.monotonic() - start_time) * 1000),
            "requested_depth": depth,
            "root_user_id": str(target),
            "current_user_id": str(requester),
            "can_go_up": can_go_up,
        }
        if can_go_up:
            metadata["parent_id"] = str(target_node.parent_id)

        return TreeResponse(tree=tree, metadata=TreeMetadata(**metadata))

    async def search_downline(
        self,
        requester_id: str | uuid.UUID,
        term: str,
        page: int = DEFAULT_SEARCH_PAGE,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> SearchPage:
        """Search the requester's own downline."""
        return await self.downline.search(requester_id, term, page, limit)

    # ── Lineage ──────────────────────────────────────────────────────

    async def get_ancestors(self, node_id: str | uuid.UUID) -> list[AncestorEntry]:
        """Active ancestors, nearest first."""
        return await self.lineage.ancestors(node_id)

    async def get_parent_chain(
        self,
        node_id: str | uuid.UUID,
        max_levels: int = DEFAULT_PARENT_CHAIN_LEVELS,
    ) -> list[ParentEntry]:
        """Bounded ancestor chain, nearest first."""
        return await self.lineage.parent_chain(node_id, max_levels)

    # ── Legs ─────────────────────────────────────────────────────────

    async def get_direct_referrals(self, node_id: str | uuid.UUID) -> list[str]:
        """Active children, LEFT first."""
        return await self.legs.direct_referrals(node_id)

    async def get_descendants_in_leg(self, leg_root_id: str | uuid.UUID) -> list[str]:
        """Leg root and everything below it."""
        return await self.legs.descendants_in_leg(leg_root_id)

    async def check_min_depth(self, node_id: str | uuid.UUID, min_levels: int) -> bool:
        """Whether the downline reaches min_levels levels."""
        return await self.legs.min_depth_satisfied(node_id, min_levels)

    # ── Membership-aware ─────────────────────────────────────────────

    def _require_qualification(self) -> LegQualification:
        if self.qualification is None:
            raise RuntimeError("TreeService was created without a membership client")
        return self.qualification

    async def get_active_ancestors_with_membership(
        self, node_id: str | uuid.UUID
    ) -> list[AncestorEntry]:
        """Active ancestors holding an active membership."""
        return await self._require_qualification().active_ancestors_with_membership(
            node_id
        )

    async def check_leg_qualification(
        self, node_id: str | uuid.UUID, side: Side | str | None
    ) -> bool:
        """Whether a leg holds an active, sponsored member with membership."""
        return await self._require_qualification().leg_has_qualified_referral(
            node_id, side
        )
