"""
Tree handlers.

Read-only structural queries: subtree views, search, lineage and legs.
"""

from typing import Any

from mlm_rpc.handlers.deps import tree_service
from mlm_rpc.router import CommandRouter
from mlm_rpc.schemas import (
    LegRootPayload,
    MinDepthPayload,
    ParentChainPayload,
    SearchPayload,
    TreeQueryPayload,
    UserIdPayload,
)
from mlm_tree.utils.rpc_envelope import RpcRequest


router = CommandRouter("tree")


@router.command("user.tree.getUserTree")
async def get_user_tree(request: RpcRequest, data: dict[str, Any]) -> dict[str, Any]:
    """Subtree view of the requester or a member of its downline."""
    payload = TreeQueryPayload.model_validate(request.data)
    response = await tree_service(data).get_user_tree(
        payload.current_user_id, payload.user_id, payload.depth
    )
    return response.to_wire()


@router.command("user.tree.searchUsers")
async def search_users(request: RpcRequest, data: dict[str, Any]) -> dict[str, Any]:
    """Substring search over the requester's downline."""
    payload = SearchPayload.model_validate(request.data)
    page = await tree_service(data).search_downline(
        payload.current_user_id, payload.search, payload.page, payload.limit
    )
    return page.to_wire()


@router.command("user.tree.getUserAncestors")
async def get_user_ancestors(
    request: RpcRequest, data: dict[str, Any]
) -> list[dict[str, Any]]:
    payload = UserIdPayload.model_validate(request.data)
    ancestors = await tree_service(data).get_ancestors(payload.user_id)
    return [entry.to_wire() for entry in ancestors]


@router.command("user.tree.getParentChain")
async def get_parent_chain(
    request: RpcRequest, data: dict[str, Any]
) -> list[dict[str, Any]]:
    payload = ParentChainPayload.model_validate(request.data)
    chain = await tree_service(data).get_parent_chain(
        payload.user_id, payload.max_levels
    )
    return [entry.to_wire() for entry in chain]


@router.command("user.tree.getDirectReferrals")
async def get_direct_referrals(request: RpcRequest, data: dict[str, Any]) -> list[str]:
    payload = UserIdPayload.model_validate(request.data)
    return await tree_service(data).get_direct_referrals(payload.user_id)


@router.command("user.tree.checkMinDepthLevels")
async def check_min_depth_levels(request: RpcRequest, data: dict[str, Any]) -> bool:
    payload = MinDepthPayload.model_validate(request.data)
    return await tree_service(data).check_min_depth(
        payload.user_id, payload.min_depth_levels
    )


@router.command("user.tree.getDescendantsInLeg")
async def get_descendants_in_leg(
    request: RpcRequest, data: dict[str, Any]
) -> list[str]:
    payload = LegRootPayload.model_validate(request.data)
    return await tree_service(data).get_descendants_in_leg(payload.leg_root_id)
