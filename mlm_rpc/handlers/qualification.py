"""
Qualification handlers.

Queries that combine the tree with membership status.
"""

from typing import Any

from mlm_rpc.handlers.deps import tree_service
from mlm_rpc.router import CommandRouter
from mlm_rpc.schemas import LegQualificationPayload, UserIdPayload
from mlm_tree.utils.rpc_envelope import RpcRequest


router = CommandRouter("qualification")


@router.command("user.tree.getActiveAncestorsWithMembership")
async def get_active_ancestors_with_membership(
    request: RpcRequest, data: dict[str, Any]
) -> list[dict[str, Any]]:
    """Active ancestors holding an active membership, nearest first."""
    payload = UserIdPayload.model_validate(request.data)
    ancestors = await tree_service(data).get_active_ancestors_with_membership(
        payload.user_id
    )
    return [entry.to_wire() for entry in ancestors]


@router.command("user.tree.checkLegQualification")
async def check_leg_qualification(request: RpcRequest, data: dict[str, Any]) -> bool:
    """Whether a leg holds an active sponsored member with membership."""
    payload = LegQualificationPayload.model_validate(request.data)
    return await tree_service(data).check_leg_qualification(
        payload.user_id, payload.side
    )
