"""
Base repository.

Lookups and inserts shared by repositories. Tree nodes are never deleted
or rewritten through the generic layer; slot writes live in
NodeRepository.
"""

import uuid
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_tree.models.base import Base

# Generic type for model
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Repository bound to one model and one request session.

    Type Parameters:
        ModelType: SQLAlchemy model class
    """

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        self.model = model
        self.session = session

    async def get_by_id(self, id: uuid.UUID) -> ModelType | None:
        """Primary key lookup (served from the identity map when loaded)."""
        return await self.session.get(self.model, id)

    async def get_by(self, **filters: Any) -> ModelType | None:
        """
        Single entity matching equality filters.

        Filters must address a unique column set; more than one match
        raises MultipleResultsFound.
        """
        stmt = select(self.model).filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, **filters: Any) -> bool:
        """Whether any row matches; no filters means the table is non-empty."""
        stmt = select(self.model).filter_by(**filters)
        result = await self.session.execute(select(stmt.exists()))
        return bool(result.scalar())

    async def create(self, **data: Any) -> ModelType:
        """
        Insert an entity and flush it.

        The flush surfaces constraint violations (IntegrityError) inside
        the caller's transaction.
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        return entity
