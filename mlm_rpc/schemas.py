"""
Command payloads.

Pydantic models for incoming payloads. Keys are camelCase on the wire;
a validation failure is reported as a 400.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mlm_tree.config.tree_constants import (
    DEFAULT_PARENT_CHAIN_LEVELS,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SEARCH_PAGE,
    DEFAULT_TREE_DEPTH,
    REFERRAL_CODE_MAX_LENGTH,
)


class Payload(BaseModel):
    """Base payload: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


class UserIdPayload(Payload):
    """Payload addressing one member."""

    user_id: str


class AllocateSlotPayload(Payload):
    """user.tree.allocateSlot"""

    sponsor_code: str = Field(min_length=1, max_length=REFERRAL_CODE_MAX_LENGTH)
    position: str | None = None
    user_id: str


class RegisterPayload(Payload):
    """user.register"""

    email: str = Field(min_length=3, max_length=255)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    document_number: str | None = Field(default=None, max_length=20)
    referrer_code: str | None = Field(
        default=None, max_length=REFERRAL_CODE_MAX_LENGTH
    )
    position: str | None = None


class TreeQueryPayload(Payload):
    """user.tree.getUserTree"""

    current_user_id: str
    user_id: str | None = None
    # Range checked by the materializer so the message matches other callers
    depth: int = DEFAULT_TREE_DEPTH


class SearchPayload(Payload):
    """user.tree.searchUsers"""

    current_user_id: str
    search: str
    page: int = DEFAULT_SEARCH_PAGE
    limit: int = DEFAULT_SEARCH_LIMIT


class ParentChainPayload(Payload):
    """user.tree.getParentChain"""

    user_id: str
    max_levels: int = DEFAULT_PARENT_CHAIN_LEVELS


class MinDepthPayload(Payload):
    """user.tree.checkMinDepthLevels"""

    user_id: str
    min_depth_levels: int


class LegRootPayload(Payload):
    """user.tree.getDescendantsInLeg"""

    leg_root_id: str


class LegQualificationPayload(Payload):
    """user.tree.checkLegQualification"""

    user_id: str
    side: str
