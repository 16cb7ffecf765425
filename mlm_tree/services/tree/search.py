"""
Downline search module.

Substring search over a member's active downline. The downline is fetched
in one query and filtered and paged in memory, which avoids a full-text
index at the cost of reading the whole downline per search.
"""

import time
import uuid

from mlm_tree.config.tree_constants import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SEARCH_PAGE,
    MAX_SEARCH_LIMIT,
    MIN_SEARCH_TERM_LENGTH,
)
from mlm_tree.repositories.rows import NodeRow
from mlm_tree.services.base_service import BaseService, log_operation
from mlm_tree.services.tree.schemas import SearchMetadata, SearchPage, SearchResult
from mlm_tree.utils.exceptions import InvalidArgumentError
from mlm_tree.utils.validation import require_node_id


def normalize_term(term: str | None) -> str:
    """
    Validate and lowercase a search term.

    Raises:
        InvalidArgumentError: Term shorter than MIN_SEARCH_TERM_LENGTH
    """
    if not isinstance(term, str) or len(term.strip()) < MIN_SEARCH_TERM_LENGTH:
        raise InvalidArgumentError(
            f"Search term must be at least {MIN_SEARCH_TERM_LENGTH} characters"
        )
    return term.strip().lower()


def matches(row: NodeRow, term: str) -> bool:
    """Case-insensitive substring match on name, email and document number."""
    haystacks = (
        f"{row.first_name or ''} {row.last_name or ''}".strip(),
        row.email or "",
        row.document_number or "",
    )
    return any(term in value.lower() for value in haystacks)


def to_result(row: NodeRow) -> SearchResult:
    """Map a row to a search result."""
    return SearchResult(
        id=str(row.id),
        email=row.email or "",
        referral_code=row.referral_code or "",
        full_name=row.full_name,
        document_number=row.document_number or None,
        position=row.side,
        is_active=row.is_active,
    )


class DownlineSearch(BaseService):
    """Search over the active descendants of a node."""

    @log_operation
    async def search(
        self,
        root_id: str | uuid.UUID,
        term: str,
        page: int = DEFAULT_SEARCH_PAGE,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> SearchPage:
        """
        Search a node's downline.

        Args:
            root_id: Node whose descendants are searched (itself excluded)
            term: Substring, at least 2 characters after trimming
            page: 1-based page number
            limit: Page size (1-100)

        Returns:
            Page of results; metadata.total counts all matches

        Raises:
            InvalidArgumentError: Malformed id, short term, bad page or limit
        """
        start_time = time.monotonic()

        node_id = require_node_id(root_id, "user id")
        needle = normalize_term(term)
        if page < 1:
            raise InvalidArgumentError("Page must be at least 1")
        if not 1 <= limit <= MAX_SEARCH_LIMIT:
            raise InvalidArgumentError(
                f"Limit must be between 1 and {MAX_SEARCH_LIMIT}"
            )

        descendants = await self._storage(
            self.node_repo.get_subtree_rows(
                node_id, active_only=True, include_root=False
            ),
            "downline fetch",
        )

        matched = [row for row in descendants if matches(row, needle)]
        offset = (page - 1) * limit
        results = [to_result(row) for row in matched[offset:offset + limit]]

        query_duration_ms = int((time.monotonic() - start_time) * 1000)
        self.logger.info(
            "Downline search completed",
            extra={
                "root_user_id": str(node_id),
                "descendants": len(descendants),
                "matches": len(matched),
                "returned": len(results),
            },
        )

        return SearchPage(
            results=results,
            metadata=SearchMetadata(
                query_duration_ms=query_duration_ms,
                total=len(matched),
                page=page,
                limit=limit,
                search_term=term,
                root_user_id=str(node_id),
            ),
        )
