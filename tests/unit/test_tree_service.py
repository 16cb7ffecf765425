"""Unit tests for the tree service facade."""

import uuid

import pytest

from mlm_tree.models.enums import Side
from mlm_tree.services.tree_service import TreeService
from mlm_tree.utils.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)


@pytest.fixture
def tree(repo):
    """
    root
     ├─ L: left
     │   └─ L: grandchild
     └─ R: right
    """
    root = repo.add_node("ROOT", first_name="Root")
    left = repo.add_node("LEFT", root, Side.LEFT, first_name="Lefty")
    right = repo.add_node("RIGHT", root, Side.RIGHT)
    grandchild = repo.add_node("GC", left, Side.LEFT)
    return {"root": root, "left": left, "right": right, "gc": grandchild}


@pytest.fixture
def service(repo, mock_session, membership):
    return TreeService(mock_session, membership=membership, node_repo=repo)


class TestGetUserTree:
    """TreeService.get_user_tree."""

    @pytest.mark.asyncio
    async def test_own_tree(self, service, tree):
        response = await service.get_user_tree(str(tree["root"].id), depth=2)

        assert response.tree.id == str(tree["root"].id)
        assert response.tree.children.left.children.left.referral_code == "GC"
        assert response.metadata.can_go_up is False
        assert response.metadata.parent_id is None
        assert response.metadata.requested_depth == 2
        assert "parentId" not in response.to_wire()["metadata"]

    @pytest.mark.asyncio
    async def test_downline_view_can_go_up(self, service, tree):
        response = await service.get_user_tree(
            tree["root"].id, root_id=str(tree["left"].id)
        )

        assert response.metadata.root_user_id == str(tree["left"].id)
        assert response.metadata.current_user_id == str(tree["root"].id)
        assert response.metadata.can_go_up is True
        assert response.metadata.parent_id == str(tree["root"].id)

    @pytest.mark.asyncio
    async def test_own_tree_of_non_root_cannot_go_up(self, service, tree):
        """Going up is offered only when viewing someone else's subtree."""
        response = await service.get_user_tree(tree["left"].id)

        assert response.metadata.can_go_up is False

    @pytest.mark.asyncio
    async def test_upline_is_forbidden(self, service, tree):
        with pytest.raises(ForbiddenError):
            await service.get_user_tree(tree["gc"].id, root_id=tree["root"].id)

    @pytest.mark.asyncio
    async def test_sibling_is_forbidden(self, service, tree):
        with pytest.raises(ForbiddenError):
            await service.get_user_tree(tree["left"].id, root_id=tree["right"].id)

    @pytest.mark.asyncio
    async def test_missing_target(self, service, tree):
        with pytest.raises(NotFoundError):
            await service.get_user_tree(tree["root"].id, root_id=uuid.uuid4())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("depth", [0, 6])
    async def test_depth_out_of_range(self, service, tree, depth):
        with pytest.raises(InvalidArgumentError):
            await service.get_user_tree(tree["root"].id, depth=depth)

    @pytest.mark.asyncio
    async def test_malformed_requester(self, service):
        with pytest.raises(InvalidArgumentError):
            await service.get_user_tree("not-a-uuid")


class TestAllocateSlot:
    """TreeService.allocate_slot."""

    @pytest.mark.asyncio
    async def test_commits_reservation(self, service, repo, mock_session, tree):
        new_id = uuid.uuid4()

        placement = await service.allocate_slot("right", "LEFT", str(new_id))

        assert placement.parent_id == tree["right"].id
        assert placement.side is Side.LEFT
        assert tree["right"].left_child_id == new_id
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, service, mock_session, tree):
        with pytest.raises(NotFoundError):
            await service.allocate_slot("MISSING", None, uuid.uuid4())

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_node_id(self, service, tree):
        with pytest.raises(InvalidArgumentError):
            await service.allocate_slot("ROOT", None, "nope")

    @pytest.mark.asyncio
    async def test_rejects_ancestor_as_child(self, service, mock_session, tree):
        root, left = tree["root"], tree["left"]

        with pytest.raises(ConflictError):
            await service.allocate_slot("LEFT", "LEFT", str(root.id))

        assert left.right_child_id is None
        assert left.left_child_id == tree["gc"].id
        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rejects_node_already_in_slot(self, service, tree):
        root, left, right = tree["root"], tree["left"], tree["right"]

        with pytest.raises(ConflictError):
            await service.allocate_slot("ROOT", "RIGHT", str(left.id))

        assert root.left_child_id == left.id
        assert root.right_child_id == right.id

    @pytest.mark.asyncio
    async def test_rejects_sponsor_as_own_child(self, service, repo, tree):
        with pytest.raises(ConflictError):
            await service.allocate_slot("RIGHT", None, str(tree["right"].id))

        assert repo.claims == []

    @pytest.mark.asyncio
    async def test_same_id_reserved_once(self, service, repo, tree):
        new_id = uuid.uuid4()
        await service.allocate_slot("RIGHT", None, str(new_id))

        with pytest.raises(ConflictError):
            await service.allocate_slot("ROOT", "LEFT", str(new_id))

        assert [claim[2] for claim in repo.claims] == [new_id]


class TestPassThroughs:
    """Delegating queries."""

    @pytest.mark.asyncio
    async def test_queries_delegate(self, service, tree):
        root, left, gc = tree["root"], tree["left"], tree["gc"]

        assert await service.get_direct_referrals(root.id) == [
            str(left.id),
            str(tree["right"].id),
        ]
        assert [a.ancestor_id for a in await service.get_ancestors(gc.id)] == [
            str(left.id),
            str(root.id),
        ]
        assert len(await service.get_parent_chain(gc.id, max_levels=1)) == 1
        assert await service.get_descendants_in_leg(left.id) == [
            str(left.id),
            str(gc.id),
        ]
        assert await service.check_min_depth(root.id, 2) is True
        page = await service.search_downline(root.id, "lefty")
        assert [r.id for r in page.results] == [str(left.id)]

    @pytest.mark.asyncio
    async def test_membership_queries(self, service, membership, tree):
        membership.active = {str(tree["root"].id)}

        ancestors = await service.get_active_ancestors_with_membership(tree["gc"].id)

        assert [a.ancestor_id for a in ancestors] == [str(tree["root"].id)]
        assert await service.check_leg_qualification(tree["root"].id, "LEFT") is False

    @pytest.mark.asyncio
    async def test_membership_queries_need_client(self, repo, mock_session, tree):
        service = TreeService(mock_session, node_repo=repo)

        with pytest.raises(RuntimeError):
            await service.check_leg_qualification(tree["root"].id, "LEFT")
