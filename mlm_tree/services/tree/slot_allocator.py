"""
Slot allocation module.

Finds and atomically claims an empty child slot in a sponsor's subtree
for a member being registered.
"""

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from mlm_tree.config.settings import PlacementPolicy, settings
from mlm_tree.models.enums import Side
from mlm_tree.repositories.node_repository import NodeRepository
from mlm_tree.repositories.rows import SlotRow
from mlm_tree.services.base_service import BaseService, log_operation
from mlm_tree.services.tree.schemas import Placement
from mlm_tree.utils.exceptions import ConflictError, NotFoundError
from mlm_tree.utils.validation import normalize_referral_code, parse_side


class SlotAllocator(BaseService):
    """
    Places new members under a sponsor.

    The search runs over the sponsor's subtree only. The claim is a
    conditional write; losing a race re-runs the search.
    """

    def __init__(
        self,
        session: AsyncSession,
        node_repo: NodeRepository | None = None,
        log: Any = None,
        policy: PlacementPolicy | None = None,
        max_scan_depth: int | None = None,
        max_retries: int | None = None,
    ) -> None:
        """Initialize slot allocator."""
        super().__init__(session, node_repo, log)
        self.policy = policy or settings.placement_policy
        self.max_scan_depth = max_scan_depth or settings.placement_scan_max_depth
        self.max_retries = max_retries or settings.slot_claim_max_retries

    @log_operation
    async def allocate(
        self,
        sponsor_code: str,
        preferred_side: Side | str | None = None,
        *,
        node_id: uuid.UUID,
    ) -> Placement:
        """
        Find and claim a slot for a new node.

        Args:
            sponsor_code: Referral code of the sponsor (case-insensitive)
            preferred_side: LEFT or RIGHT, LEFT if omitted
            node_id: ID the new node will be created with

        Returns:
            Claimed parent and side (side may differ from the preferred one)

        Raises:
            InvalidArgumentError: Malformed side or empty sponsor code
            NotFoundError: Sponsor missing or inactive
            ConflictError: Node id already placed or reserved, slot claims
                kept colliding, or storage timed out
        """
        side = parse_side(preferred_side)
        code = normalize_referral_code(sponsor_code)

        sponsor = await self._storage(
            self.node_repo.get_by_referral_code(code, active_only=True),
            "sponsor lookup",
            error_cls=ConflictError,
        )
        if sponsor is None:
            raise NotFoundError(f"Referral code {code} does not exist")

        in_use = await self._storage(
            self.node_repo.node_id_in_use(node_id),
            "node id check",
            error_cls=ConflictError,
        )
        if in_use:
            raise ConflictError(f"User {node_id} is already placed in the tree")

        for attempt in range(1, self.max_retries + 1):
            placement = await self.find_slot(sponsor.id, side)
            if placement is None:
                # Reserved slots whose rows are not visible yet hide the
                # levels below them
                self.logger.warning(
                    "No free slot found, searching again",
                    extra={"sponsor_code": code, "attempt": attempt},
                )
                continue

            claimed = await self._storage(
                self.node_repo.claim_slot(placement.parent_id, placement.side, node_id),
                "slot claim",
                error_cls=ConflictError,
            )
            if claimed:
                self.logger.info(
                    "Slot claimed",
                    extra={
                        "sponsor_code": code,
                        "parent_id": str(placement.parent_id),
                        "side": placement.side.value,
                        "node_id": str(node_id),
                        "attempt": attempt,
                    },
                )
                return placement

            self.logger.warning(
                "Slot taken concurrently, searching again",
                extra={
                    "parent_id": str(placement.parent_id),
                    "side": placement.side.value,
                    "attempt": attempt,
                },
            )

        raise ConflictError(
            f"Could not claim a slot under {code} after {self.max_retries} attempts"
        )

    async def find_slot(
        self, sponsor_id: uuid.UUID, side: Side
    ) -> Placement | None:
        """
        Search the sponsor's subtree for an empty slot without claiming it.

        Preferred side first, then the opposite side, then the sponsor's
        own slots.

        Returns:
            Candidate placement, or None if nothing is free within the
            scan depth
        """
        for candidate_side in (side, side.opposite()):
            parent_id = await self._search(sponsor_id, candidate_side)
            if parent_id is not None:
                return Placement(parent_id=parent_id, side=candidate_side)

        slots = await self._storage(
            self.node_repo.get_slot_rows([sponsor_id]),
            "sponsor slots",
            error_cls=ConflictError,
        )
        sponsor_slots = slots.get(sponsor_id)
        if sponsor_slots is not None:
            for candidate_side in (Side.LEFT, Side.RIGHT):
                if sponsor_slots.is_free(candidate_side):
                    return Placement(parent_id=sponsor_id, side=candidate_side)

        return None

    async def _search(self, sponsor_id: uuid.UUID, side: Side) -> uuid.UUID | None:
        """Dispatch to the configured policy."""
        if self.policy is PlacementPolicy.DEEPEST_IN_LEG:
            return await self._deepest_in_leg(sponsor_id, side)
        return await self._breadth_first(sponsor_id, side)

    async def _breadth_first(
        self, sponsor_id: uuid.UUID, side: Side
    ) -> uuid.UUID | None:
        """
        Shallowest node whose given slot is empty, scanning level by level.

        One query per level; within a level nodes are visited left to right.
        """
        frontier = [sponsor_id]

        for _ in range(self.max_scan_depth + 1):
            if not frontier:
                return None

            slots = await self._storage(
                self.node_repo.get_slot_rows(frontier),
                "level scan",
                error_cls=ConflictError,
            )

            next_frontier: list[uuid.UUID] = []
            for node_id in frontier:
                row: SlotRow | None = slots.get(node_id)
                if row is None:
                    # Slot claimed but child row not committed yet
                    continue
                if row.is_free(side):
                    return node_id
                for child_side in (Side.LEFT, Side.RIGHT):
                    child_id = row.child_id(child_side)
                    if child_id is not None:
                        next_frontier.append(child_id)

            frontier = next_frontier

        return None

    async def _deepest_in_leg(
        self, sponsor_id: uuid.UUID, side: Side
    ) -> uuid.UUID | None:
        """Follow only the given side down to the first empty slot."""
        current_id = sponsor_id

        for _ in range(self.max_scan_depth + 1):
            slots = await self._storage(
                self.node_repo.get_slot_rows([current_id]),
                "leg scan",
                error_cls=ConflictError,
            )
            row = slots.get(current_id)
            if row is None:
                return None
            if row.is_free(side):
                return current_id
            current_id = row.child_id(side)

        return None
