"""
Base repository.

The record store is used as a plain field store: equality lookups and
inserts, no joins. Repositories flush but never commit; the owning service
decides when a unit of work ends.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base


ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Equality-filter lookups and inserts for one table."""

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        self.model = model
        self.session = session

    def _where(self, **filters: Any) -> Select:
        return select(self.model).filter_by(**filters)

    async def get_by(self, **filters: Any) -> ModelType | None:
        """First row matching all filters, or None."""
        result = await self.session.execute(self._where(**filters).limit(1))
        return result.scalars().first()

    async def find_by(self, **filters: Any) -> list[ModelType]:
        """All rows matching all filters, in insertion (id) order."""
        result = await self.session.execute(
            self._where(**filters).order_by(self.model.id)
        )
        return list(result.scalars().all())

    async def create(self, **data: Any) -> ModelType:
        """
        Insert a row.

        Returns:
            The new entity, flushed so its id is populated
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        return entity
