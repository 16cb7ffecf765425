"""
Tree service result models.

Pydantic models returned by the tree services. Field names are snake_case
in Python and camelCase on the wire (``to_wire``).
"""

import uuid
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from mlm_tree.models.enums import Side


class WireModel(BaseModel):
    """Base for models sent to RPC callers."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase keys; unset optional branches are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


@dataclass(frozen=True, slots=True)
class Placement:
    """Slot granted by the allocator."""

    parent_id: uuid.UUID
    side: Side

    def to_wire(self) -> dict[str, str]:
        """Serialize for RPC callers."""
        return {"parentId": str(self.parent_id), "position": self.side.value}


class TreeChildren(WireModel):
    """Children of a materialized node. A side is present only if found."""

    left: "TreeNode | None" = None
    right: "TreeNode | None" = None


class TreeNode(WireModel):
    """Node of a materialized subtree."""

    id: str
    email: str
    referral_code: str
    position: Side | None
    is_active: bool
    full_name: str
    depth: int
    children: TreeChildren | None = None


class TreeMetadata(WireModel):
    """Request metadata for a subtree view."""

    query_duration_ms: int
    requested_depth: int
    root_user_id: str
    current_user_id: str
    can_go_up: bool
    parent_id: str | None = None


class TreeResponse(WireModel):
    """Subtree view with navigation metadata."""

    tree: TreeNode
    metadata: TreeMetadata


class AncestorEntry(WireModel):
    """Active ancestor and the side the walk arrived from."""

    ancestor_id: str
    name: str
    email: str
    side: Side


class ParentEntry(WireModel):
    """Ancestor of a bounded parent chain."""

    ancestor_id: str
    name: str
    email: str


class SearchResult(WireModel):
    """Downline member matching a search term."""

    id: str
    email: str
    referral_code: str
    full_name: str
    document_number: str | None
    position: Side | None
    is_active: bool


class SearchMetadata(WireModel):
    """Pagination data for a downline search."""

    query_duration_ms: int
    total: int
    page: int
    limit: int
    search_term: str
    root_user_id: str


class SearchPage(WireModel):
    """One page of downline search results."""

    results: list[SearchResult]
    metadata: SearchMetadata


TreeChildren.model_rebuild()
