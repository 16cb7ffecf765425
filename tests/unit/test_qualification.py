"""Unit tests for membership-aware leg queries."""

import uuid

import pytest

from mlm_tree.models.enums import Side
from mlm_tree.services.tree.qualification import LegQualification
from mlm_tree.utils.exceptions import InvalidArgumentError, NotFoundError
from tests.fakes import FakeMembershipClient


@pytest.fixture
def tree(repo):
    """
    sponsor (code SPON)
     ├─ L: filler
     │   └─ R: recruit (registered with SPON)
     └─ R: outsider (registered with OTHER)
    """
    sponsor = repo.add_node("SPON", first_name="Sara")
    filler = repo.add_node("FILL", sponsor, Side.LEFT)
    recruit = repo.add_node("REC", filler, Side.RIGHT, referrer_code="SPON")
    outsider = repo.add_node("OUT", sponsor, Side.RIGHT, referrer_code="OTHER")
    return {"sponsor": sponsor, "filler": filler, "recruit": recruit, "outsider": outsider}


def make(repo, mock_session, active=()):
    membership = FakeMembershipClient(active)
    return LegQualification(mock_session, membership, node_repo=repo), membership


class TestActiveAncestorsWithMembership:

    @pytest.mark.asyncio
    async def test_filters_by_membership(self, repo, mock_session, tree):
        service, membership = make(repo, mock_session, active=[tree["sponsor"].id])

        ancestors = await service.active_ancestors_with_membership(tree["recruit"].id)

        assert [a.ancestor_id for a in ancestors] == [str(tree["sponsor"].id)]
        assert ancestors[0].side is Side.LEFT
        assert membership.calls == [[str(tree["filler"].id), str(tree["sponsor"].id)]]

    @pytest.mark.asyncio
    async def test_root_skips_membership_lookup(self, repo, mock_session, tree):
        service, membership = make(repo, mock_session)

        assert await service.active_ancestors_with_membership(tree["sponsor"].id) == []
        assert membership.calls == []

    @pytest.mark.asyncio
    async def test_malformed_id_rejected(self, repo, mock_session):
        service, _ = make(repo, mock_session)

        with pytest.raises(InvalidArgumentError):
            await service.active_ancestors_with_membership("not-an-id")


class TestLegHasQualifiedReferral:

    @pytest.mark.asyncio
    async def test_sponsored_member_with_membership_qualifies(
        self, repo, mock_session, tree
    ):
        service, _ = make(repo, mock_session, active=[tree["recruit"].id])

        assert await service.leg_has_qualified_referral(tree["sponsor"].id, "LEFT") is True

    @pytest.mark.asyncio
    async def test_membership_required(self, repo, mock_session, tree):
        service, membership = make(repo, mock_session)

        assert await service.leg_has_qualified_referral(tree["sponsor"].id, Side.LEFT) is False
        assert membership.calls == [[str(tree["recruit"].id)]]

    @pytest.mark.asyncio
    async def test_other_sponsors_do_not_count(self, repo, mock_session, tree):
        """Only members registered with this node's code qualify the leg."""
        service, membership = make(repo, mock_session, active=[tree["outsider"].id])

        assert await service.leg_has_qualified_referral(tree["sponsor"].id, Side.RIGHT) is False
        assert membership.calls == []

    @pytest.mark.asyncio
    async def test_inactive_member_does_not_count(self, repo, mock_session, tree):
        tree["recruit"].is_active = False
        service, _ = make(repo, mock_session, active=[tree["recruit"].id])

        assert await service.leg_has_qualified_referral(tree["sponsor"].id, Side.LEFT) is False

    @pytest.mark.asyncio
    async def test_empty_leg_is_false(self, repo, mock_session, tree):
        service, _ = make(repo, mock_session)

        assert await service.leg_has_qualified_referral(tree["recruit"].id, Side.LEFT) is False

    @pytest.mark.asyncio
    async def test_missing_node(self, repo, mock_session):
        service, _ = make(repo, mock_session)

        with pytest.raises(NotFoundError):
            await service.leg_has_qualified_referral(uuid.uuid4(), Side.LEFT)

    @pytest.mark.asyncio
    async def test_invalid_side(self, repo, mock_session, tree):
        service, _ = make(repo, mock_session)

        with pytest.raises(InvalidArgumentError):
            await service.leg_has_qualified_referral(tree["sponsor"].id, "MIDDLE")
