"""Unit tests for slot allocation."""

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest

from mlm_tree.config.settings import PlacementPolicy
from mlm_tree.models.enums import Side
from mlm_tree.services.tree.slot_allocator import SlotAllocator
from mlm_tree.utils.exceptions import ConflictError, InvalidArgumentError, NotFoundError


def make_allocator(repo, mock_session, **kwargs):
    return SlotAllocator(mock_session, node_repo=repo, **kwargs)


class TestAllocateBasics:
    """Sponsor resolution and the first placements."""

    @pytest.mark.asyncio
    async def test_first_child_goes_to_preferred_side(self, repo, mock_session):
        """Sponsor ABC123 without children grants its LEFT slot."""
        sponsor = repo.add_node("ABC123")
        allocator = make_allocator(repo, mock_session)

        placement = await allocator.allocate("ABC123", Side.LEFT, node_id=uuid.uuid4())

        assert placement.parent_id == sponsor.id
        assert placement.side is Side.LEFT

    @pytest.mark.asyncio
    async def test_same_slot_never_granted_twice(self, repo, mock_session):
        """A second identical request lands somewhere else."""
        sponsor = repo.add_node("ABC123")
        allocator = make_allocator(repo, mock_session)

        first_id = uuid.uuid4()
        first = await allocator.allocate("ABC123", "LEFT", node_id=first_id)
        repo.add_node("FIRST", sponsor, first.side, node_id=first_id, link_parent=False)

        second = await allocator.allocate("ABC123", "LEFT", node_id=uuid.uuid4())

        assert (second.parent_id, second.side) != (sponsor.id, Side.LEFT)
        assert second.parent_id == first_id
        assert second.side is Side.LEFT

    @pytest.mark.asyncio
    async def test_sponsor_code_is_case_insensitive(self, repo, mock_session):
        """Lowercase codes resolve to the uppercase sponsor."""
        sponsor = repo.add_node("ABC123")
        allocator = make_allocator(repo, mock_session)

        placement = await allocator.allocate(" abc123 ", None, node_id=uuid.uuid4())

        assert placement.parent_id == sponsor.id
        assert placement.side is Side.LEFT

    @pytest.mark.asyncio
    async def test_unknown_sponsor_raises_not_found(self, repo, mock_session):
        """Unknown referral code is a NotFoundError."""
        allocator = make_allocator(repo, mock_session)

        with pytest.raises(NotFoundError):
            await allocator.allocate("NOPE", Side.LEFT, node_id=uuid.uuid4())

    @pytest.mark.asyncio
    async def test_inactive_sponsor_raises_not_found(self, repo, mock_session):
        """Inactive sponsors cannot receive placements."""
        repo.add_node("SLEEPY", is_active=False)
        allocator = make_allocator(repo, mock_session)

        with pytest.raises(NotFoundError):
            await allocator.allocate("SLEEPY", Side.LEFT, node_id=uuid.uuid4())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("side", ["UP", "", 1])
    async def test_invalid_side_rejected(self, repo, mock_session, side):
        """Only LEFT and RIGHT are accepted."""
        repo.add_node("ABC123")
        allocator = make_allocator(repo, mock_session)

        with pytest.raises(InvalidArgumentError):
            await allocator.allocate("ABC123", side, node_id=uuid.uuid4())


class TestBreadthFirstPolicy:
    """Shallowest free slot first."""

    @pytest.mark.asyncio
    async def test_shallowest_slot_wins_over_deeper_leg(self, repo, mock_session):
        """A free LEFT slot on level 1 is used before level 2."""
        sponsor = repo.add_node("S")
        left = repo.add_node("L", sponsor, Side.LEFT)
        right = repo.add_node("R", sponsor, Side.RIGHT)
        repo.add_node("LL", left, Side.LEFT)
        allocator = make_allocator(repo, mock_session)

        placement = await allocator.allocate("S", Side.LEFT, node_id=uuid.uuid4())

        assert placement.parent_id == right.id
        assert placement.side is Side.LEFT

    @pytest.mark.asyncio
    async def test_left_to_right_within_level(self, repo, mock_session):
        """Within a level the left subtree is scanned first."""
        sponsor = repo.add_node("S")
        left = repo.add_node("L", sponsor, Side.LEFT)
        repo.add_node("R", sponsor, Side.RIGHT)
        allocator = make_allocator(repo, mock_session)

        placement = await allocator.allocate("S", Side.RIGHT, node_id=uuid.uuid4())

        assert placement.parent_id == left.id
        assert placement.side is Side.RIGHT

    @pytest.mark.asyncio
    async def test_falls_back_to_opposite_side(self, repo, mock_session):
        """Opposite side is used when no preferred slot is free in range."""
        sponsor = repo.add_node("S")
        left = repo.add_node("L", sponsor, Side.LEFT)
        allocator = make_allocator(repo, mock_session, max_scan_depth=1)
        # Both levels in range have their LEFT slots taken
        repo.add_node("LL", left, Side.LEFT)

        placement = await allocator.allocate("S", Side.LEFT, node_id=uuid.uuid4())

        assert placement.parent_id == sponsor.id
        assert placement.side is Side.RIGHT

    @pytest.mark.asyncio
    async def test_full_range_raises_conflict(self, repo, mock_session):
        """No free slot within the scan depth is a conflict."""
        sponsor = repo.add_node("S")
        left = repo.add_node("L", sponsor, Side.LEFT)
        right = repo.add_node("R", sponsor, Side.RIGHT)
        for parent in (left, right):
            repo.add_node(f"{parent.referral_code}L", parent, Side.LEFT)
            repo.add_node(f"{parent.referral_code}R", parent, Side.RIGHT)
        allocator = make_allocator(repo, mock_session, max_scan_depth=1)

        with pytest.raises(ConflictError):
            await allocator.allocate("S", Side.LEFT, node_id=uuid.uuid4())


class TestDeepestInLegPolicy:
    """Follow the preferred side only."""

    @pytest.mark.asyncio
    async def test_follows_preferred_leg_to_the_bottom(self, repo, mock_session):
        """Free slots elsewhere are ignored."""
        sponsor = repo.add_node("S")
        left = repo.add_node("L", sponsor, Side.LEFT)
        left_left = repo.add_node("LL", left, Side.LEFT)
        allocator = make_allocator(
            repo, mock_session, policy=PlacementPolicy.DEEPEST_IN_LEG
        )

        placement = await allocator.allocate("S", Side.LEFT, node_id=uuid.uuid4())

        assert placement.parent_id == left_left.id
        assert placement.side is Side.LEFT


class TestClaimRaces:
    """Write-once slots under concurrent claims."""

    @pytest.mark.asyncio
    async def test_concurrent_allocations_get_distinct_slots(self, repo, mock_session):
        """Every concurrent request ends in its own (parent, side) pair."""
        sponsor = repo.add_node("S")

        async def register(index: int):
            node_id = uuid.uuid4()
            allocator = make_allocator(repo, mock_session, max_retries=20)
            placement = await allocator.allocate("S", Side.LEFT, node_id=node_id)
            repo.add_node(
                f"N{index}",
                placement.parent_id,
                placement.side,
                node_id=node_id,
                link_parent=False,
            )
            return placement

        placements = await asyncio.gather(*(register(i) for i in range(8)))

        pairs = {(p.parent_id, p.side) for p in placements}
        assert len(pairs) == 8
        assert len(repo.claims) == 8
        # Each claimed slot points at exactly the node registered for it
        for parent_id, side, child_id in repo.claims:
            assert getattr(repo.nodes[parent_id], side.child_column) == child_id
            assert repo.nodes[child_id].parent_id == parent_id
        assert sponsor.left_child_id is not None
        assert sponsor.right_child_id is not None

    @pytest.mark.asyncio
    async def test_lost_race_retries_search(self, repo, mock_session):
        """A failed claim triggers a fresh search."""
        repo.add_node("S")
        repo.claim_slot = AsyncMock(side_effect=[False, True])
        allocator = make_allocator(repo, mock_session)

        await allocator.allocate("S", Side.LEFT, node_id=uuid.uuid4())

        assert repo.claim_slot.await_count == 2

    @pytest.mark.asyncio
    async def test_conflict_after_retries_exhausted(self, repo, mock_session):
        """Persistent collisions surface as ConflictError."""
        repo.add_node("S")
        repo.claim_slot = AsyncMock(return_value=False)
        allocator = make_allocator(repo, mock_session, max_retries=3)

        with pytest.raises(ConflictError):
            await allocator.allocate("S", Side.LEFT, node_id=uuid.uuid4())

        assert repo.claim_slot.await_count == 3

    @pytest.mark.asyncio
    async def test_storage_timeout_during_placement_is_conflict(
        self, repo, mock_session
    ):
        """Timeouts while placing are retryable conflicts."""
        repo.add_node("S")

        async def slow_claim(*args, **kwargs):
            await asyncio.sleep(1)
            return True

        repo.claim_slot = slow_claim
        allocator = make_allocator(repo, mock_session)
        allocator.storage_timeout = 0.01

        with pytest.raises(ConflictError):
            await allocator.allocate("S", Side.LEFT, node_id=uuid.uuid4())
