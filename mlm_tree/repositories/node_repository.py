"""
Node repository.

Data access layer for tree nodes (User model). All traversals are single
PostgreSQL recursive CTEs so latency does not grow with round trips.
"""

import uuid
from collections.abc import Iterable

from sqlalchemy import ARRAY, Uuid, any_, bindparam, or_, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from mlm_tree.models.enums import Side
from mlm_tree.models.user import User
from mlm_tree.repositories.base import BaseRepository
from mlm_tree.repositories.rows import NodeRow, SlotRow


_NODE_COLUMNS = """
    u.id,
    u.email,
    u.first_name,
    u.last_name,
    u.document_number,
    u.referral_code,
    u.referrer_code,
    u.parent_id,
    u.left_child_id,
    u.right_child_id,
    u.position,
    u.is_active
"""

# Root at depth 0, children at depth 1, ...
_SUBTREE_SQL = """
    WITH RECURSIVE subtree AS (
        SELECT {columns}, 0 AS depth
        FROM users u
        WHERE u.id = :root_id

        UNION ALL

        SELECT {columns}, s.depth + 1 AS depth
        FROM users u
        INNER JOIN subtree s ON u.parent_id = s.id
        {depth_filter}
    )
    SELECT *
    FROM subtree
    {row_filter}
    ORDER BY depth ASC
"""

# Start node at level 0, its parent at level 1, ...
_LINEAGE_SQL = """
    WITH RECURSIVE lineage AS (
        SELECT {columns}, 0 AS depth
        FROM users u
        WHERE u.id = :node_id

        UNION ALL

        SELECT {columns}, l.depth + 1 AS depth
        FROM users u
        INNER JOIN lineage l ON u.id = l.parent_id
        {depth_filter}
    )
"""


def _placed(node_id: uuid.UUID):
    """Rows that are the node, or hold it in a child slot."""
    other = aliased(User)
    return select(other.id).where(
        or_(
            other.id == node_id,
            other.left_child_id == node_id,
            other.right_child_id == node_id,
        )
    )


class NodeRepository(BaseRepository[User]):
    """Node repository with tree traversal queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize node repository."""
        super().__init__(User, session)

    # ── Point lookups ────────────────────────────────────────────────

    async def get_by_referral_code(
        self, referral_code: str, active_only: bool = False
    ) -> User | None:
        """
        Get node by referral code.

        Args:
            referral_code: Normalized (uppercase) referral code
            active_only: Ignore inactive nodes

        Returns:
            User or None
        """
        filters: dict[str, object] = {"referral_code": referral_code}
        if active_only:
            filters["is_active"] = True
        return await self.get_by(**filters)

    async def get_by_email(self, email: str) -> User | None:
        """Get node by email (case-insensitive)."""
        return await self.get_by(email=email.strip().lower())

    async def referral_code_exists(self, referral_code: str) -> bool:
        """Check whether a referral code is already taken."""
        return await self.exists(referral_code=referral_code)

    async def has_nodes(self) -> bool:
        """True if the tree has a root already."""
        return await self.exists()

    async def node_id_in_use(self, node_id: uuid.UUID) -> bool:
        """True if the id has a row or already holds a slot somewhere."""
        result = await self.session.execute(select(_placed(node_id).exists()))
        return bool(result.scalar())

    # ── Slot allocation ──────────────────────────────────────────────

    async def get_slot_rows(
        self, node_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, SlotRow]:
        """
        Get slot occupancy for one BFS level in a single query.

        Args:
            node_ids: Node IDs of the level

        Returns:
            Dict mapping node id to its slots
        """
        ids = list(node_ids)
        if not ids:
            return {}

        # One array parameter: a wide level would exceed the driver's
        # bind parameter limit as an IN list
        stmt = select(
            User.id, User.left_child_id, User.right_child_id
        ).where(User.id == any_(bindparam("ids", ids, type_=ARRAY(Uuid))))
        result = await self.session.execute(stmt)

        return {
            row.id: SlotRow(
                id=row.id,
                left_child_id=row.left_child_id,
                right_child_id=row.right_child_id,
            )
            for row in result.all()
        }

    async def claim_slot(
        self, parent_id: uuid.UUID, side: Side, child_id: uuid.UUID
    ) -> bool:
        """
        Atomically claim an empty child slot.

        Conditional update: succeeds only if the slot is still empty at
        write time and the child id is neither a node nor held in any
        slot. A concurrent claimer blocks on the row lock and then sees
        the slot taken.

        Args:
            parent_id: Parent node ID
            side: Slot to claim
            child_id: Node that will occupy the slot

        Returns:
            True if the slot was claimed, False if the slot was taken or
            the child id is already in use
        """
        column = getattr(User, side.child_column)
        stmt = (
            update(User)
            .where(
                User.id == parent_id,
                column.is_(None),
                ~_placed(child_id).exists(),
            )
            .values({side.child_column: child_id})
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    # ── Downward traversals ──────────────────────────────────────────

    async def get_subtree_rows(
        self,
        root_id: uuid.UUID,
        max_depth: int | None = None,
        active_only: bool = False,
        include_root: bool = True,
    ) -> list[NodeRow]:
        """
        Get every node of a subtree in one recursive query.

        Args:
            root_id: Subtree root
            max_depth: Deepest level returned (root is 0), None for unbounded
            active_only: Only return active nodes
            include_root: Include the root row itself

        Returns:
            Rows ordered by depth
        """
        depth_filter = "WHERE s.depth < :max_depth" if max_depth is not None else ""

        conditions = []
        if active_only:
            conditions.append("is_active = TRUE")
        if not include_root:
            conditions.append("depth > 0")
        row_filter = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = text(
            _SUBTREE_SQL.format(
                columns=_NODE_COLUMNS,
                depth_filter=depth_filter,
                row_filter=row_filter,
            )
        )
        params: dict[str, object] = {"root_id": root_id}
        if max_depth is not None:
            params["max_depth"] = max_depth

        result = await self.session.execute(query, params)
        return [NodeRow.from_mapping(row) for row in result.mappings().all()]

    async def get_subtree_ids(self, root_id: uuid.UUID) -> list[uuid.UUID]:
        """
        Get IDs of a node and all its descendants.

        Args:
            root_id: Subtree root

        Returns:
            IDs ordered by depth, root first (empty if root is missing)
        """
        query = text("""
            WITH RECURSIVE subtree AS (
                SELECT u.id, 0 AS depth
                FROM users u
                WHERE u.id = :root_id

                UNION ALL

                SELECT u.id, s.depth + 1 AS depth
                FROM users u
                INNER JOIN subtree s ON u.parent_id = s.id
            )
            SELECT id
            FROM subtree
            ORDER BY depth ASC
        """)
        result = await self.session.execute(query, {"root_id": root_id})
        return [row[0] for row in result.all()]

    async def get_max_descendant_depth(
        self, root_id: uuid.UUID
    ) -> int | None:
        """
        Get the deepest level below a node.

        Args:
            root_id: Node ID

        Returns:
            0 for a leaf, number of levels below the node otherwise,
            None if the node does not exist
        """
        query = text("""
            WITH RECURSIVE subtree AS (
                SELECT u.id, 0 AS depth
                FROM users u
                WHERE u.id = :root_id

                UNION ALL

                SELECT u.id, s.depth + 1 AS depth
                FROM users u
                INNER JOIN subtree s ON u.parent_id = s.id
            )
            SELECT MAX(depth) AS max_depth
            FROM subtree
        """)
        result = await self.session.execute(query, {"root_id": root_id})
        return result.scalar()

    async def get_child_ids(
        self, parent_id: uuid.UUID, active_only: bool = True
    ) -> list[uuid.UUID]:
        """
        Get IDs of nodes placed directly under a parent.

        Args:
            parent_id: Parent node ID
            active_only: Only return active children

        Returns:
            LEFT child first
        """
        stmt = select(User.id).where(User.parent_id == parent_id)
        if active_only:
            stmt = stmt.where(User.is_active.is_(True))
        stmt = stmt.order_by(User.position.asc())

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # ── Upward traversals ────────────────────────────────────────────

    async def get_lineage_rows(
        self, node_id: uuid.UUID, max_levels: int | None = None
    ) -> list[NodeRow]:
        """
        Get a node and its ancestors in one recursive query.

        Args:
            node_id: Starting node
            max_levels: Number of ancestors to return, None for all

        Returns:
            Starting node (depth 0) followed by its parent (depth 1),
            grandparent (depth 2), ... Empty if the node is missing.
        """
        depth_filter = "WHERE l.depth < :max_levels" if max_levels is not None else ""
        query = text(
            _LINEAGE_SQL.format(columns=_NODE_COLUMNS, depth_filter=depth_filter)
            + """
            SELECT *
            FROM lineage
            ORDER BY depth ASC
            """
        )
        params: dict[str, object] = {"node_id": node_id}
        if max_levels is not None:
            params["max_levels"] = max_levels

        result = await self.session.execute(query, params)
        return [NodeRow.from_mapping(row) for row in result.mappings().all()]

    async def is_ancestor(
        self, ancestor_id: uuid.UUID, node_id: uuid.UUID
    ) -> bool:
        """
        Check whether ancestor_id lies on the parent chain of node_id.

        The node itself does not count.

        Args:
            ancestor_id: Candidate ancestor
            node_id: Node whose parent chain is walked

        Returns:
            True if ancestor_id is a strict ancestor of node_id
        """
        query = text("""
            WITH RECURSIVE lineage AS (
                SELECT u.id, u.parent_id, 0 AS depth
                FROM users u
                WHERE u.id = :node_id

                UNION ALL

                SELECT u.id, u.parent_id, l.depth + 1 AS depth
                FROM users u
                INNER JOIN lineage l ON u.id = l.parent_id
            )
            SELECT EXISTS (
                SELECT 1
                FROM lineage
                WHERE id = :ancestor_id AND depth > 0
            )
        """)
        result = await self.session.execute(
            query, {"node_id": node_id, "ancestor_id": ancestor_id}
        )
        return bool(result.scalar())
