"""Base repository: primary-key lookup, insert and reload for one ORM model."""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from plm.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with get_orm_by_id, add and reload.

    Subclasses return application DTOs; ORM instances never leave the
    repository.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def get_orm_by_id(self, entity_id: str) -> ModelType | None:
        """Return a single record by primary key, or None."""
        model: Any = self.model
        result = await self.db.execute(select(self.model).where(model.id == entity_id))
        return result.scalar_one_or_none()

    async def add(self, obj: ModelType) -> ModelType:
        """Persist a new record and refresh server defaults."""
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def reload(self, entity_id: str) -> ModelType | None:
        """Re-read a row after a bulk UPDATE, replacing any stale identity-map state."""
        model: Any = self.model
        result = await self.db.execute(
            select(self.model)
            .where(model.id == entity_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
