"""
Placement handlers.

Slot reservation and member registration.
"""

from typing import Any

from mlm_rpc.handlers.deps import tree_service
from mlm_rpc.router import CommandRouter
from mlm_rpc.schemas import AllocateSlotPayload, RegisterPayload
from mlm_tree.services.member.registration import MemberRegistrationService
from mlm_tree.utils.rpc_envelope import RpcRequest


router = CommandRouter("placement")


@router.command("user.tree.allocateSlot")
async def allocate_slot(request: RpcRequest, data: dict[str, Any]) -> dict[str, str]:
    """Reserve a slot under a sponsor for a member id."""
    payload = AllocateSlotPayload.model_validate(request.data)
    placement = await tree_service(data).allocate_slot(
        payload.sponsor_code, payload.position, payload.user_id
    )
    return placement.to_wire()


@router.command("user.register")
async def register(request: RpcRequest, data: dict[str, Any]) -> dict[str, Any]:
    """Register a member and place it under its sponsor."""
    payload = RegisterPayload.model_validate(request.data)
    service = MemberRegistrationService(data["session"], log=data.get("logger"))

    user = await service.register_member(
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        document_number=payload.document_number,
        sponsor_code=payload.referrer_code,
        position=payload.position,
    )

    return {
        "user": {
            "id": str(user.id),
            "email": user.email,
            "referralCode": user.referral_code,
            "firstName": user.first_name,
            "lastName": user.last_name,
        }
    }
