"""
Member registration.

Creates a member and places it in the binary tree in one transaction.
"""

import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_tree.config.tree_constants import (
    REFERRAL_CODE_LENGTH,
    REFERRAL_CODE_MAX_ATTEMPTS,
)
from mlm_tree.models.enums import Side
from mlm_tree.models.user import User
from mlm_tree.repositories.node_repository import NodeRepository
from mlm_tree.services.base_service import BaseService, log_operation, transaction
from mlm_tree.services.tree.slot_allocator import SlotAllocator
from mlm_tree.utils.exceptions import ConflictError, InvalidArgumentError


def generate_referral_code() -> str:
    """Random uppercase hex referral code."""
    return uuid.uuid4().hex[:REFERRAL_CODE_LENGTH].upper()


class MemberRegistrationService(BaseService):
    """Registers members and places them under their sponsor."""

    def __init__(
        self,
        session: AsyncSession,
        node_repo: NodeRepository | None = None,
        log: Any = None,
        allocator: SlotAllocator | None = None,
    ) -> None:
        """Initialize registration service."""
        super().__init__(session, node_repo, log)
        self.allocator = allocator or SlotAllocator(session, self.node_repo, log)

    async def _unique_referral_code(self) -> str:
        """
        Generate a referral code nobody holds yet.

        Raises:
            ConflictError: Every attempt collided
        """
        for _ in range(REFERRAL_CODE_MAX_ATTEMPTS):
            code = generate_referral_code()
            taken = await self._storage(
                self.node_repo.referral_code_exists(code), "referral code check"
            )
            if not taken:
                return code

        raise ConflictError(
            f"Could not generate a unique referral code after "
            f"{REFERRAL_CODE_MAX_ATTEMPTS} attempts"
        )

    @log_operation
    @transaction
    async def register_member(
        self,
        email: str,
        first_name: str,
        last_name: str,
        document_number: str | None = None,
        sponsor_code: str | None = None,
        position: Side | str | None = None,
    ) -> User:
        """
        Register a member and place it in the tree.

        Args:
            email: Login email (stored lowercase)
            first_name: First name
            last_name: Last name
            document_number: Identity document number
            sponsor_code: Referral code of the sponsor; omitted only for
                the first member, who becomes the root
            position: Preferred side under the sponsor

        Returns:
            Created user

        Raises:
            InvalidArgumentError: Bad email or side, or no sponsor code
                while the tree already has a root
            NotFoundError: Sponsor code unknown or inactive
            ConflictError: Email taken, slot or code collisions
        """
        normalized_email = (email or "").strip().lower()
        if "@" not in normalized_email:
            raise InvalidArgumentError(f"Invalid email: {email!r}")

        existing = await self._storage(
            self.node_repo.get_by_email(normalized_email), "email lookup"
        )
        if existing is not None:
            raise ConflictError("Email is already registered")

        referral_code = await self._unique_referral_code()
        node_id = uuid.uuid4()

        parent_id: uuid.UUID | None = None
        side: Side | None = None
        referrer_code: str | None = None

        if sponsor_code:
            placement = await self.allocator.allocate(
                sponsor_code, position, node_id=node_id
            )
            parent_id = placement.parent_id
            side = placement.side
            referrer_code = sponsor_code.strip().upper()
        else:
            has_root = await self._storage(
                self.node_repo.has_nodes(), "root check"
            )
            if has_root:
                raise InvalidArgumentError(
                    "A referral code is required to join the tree"
                )

        try:
            user = await self.node_repo.create(
                id=node_id,
                email=normalized_email,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                document_number=document_number.strip() if document_number else None,
                referral_code=referral_code,
                referrer_code=referrer_code,
                parent_id=parent_id,
                position=side.value if side else None,
                is_active=True,
            )
        except IntegrityError as e:
            # Concurrent registration with the same email, code or root
            raise ConflictError("A member with these details already exists") from e

        self.logger.info(
            "Member registered",
            extra={
                "user_id": str(user.id),
                "referral_code": referral_code,
                "parent_id": str(parent_id) if parent_id else None,
                "side": side.value if side else None,
                "is_root": parent_id is None,
            },
        )
        return user
