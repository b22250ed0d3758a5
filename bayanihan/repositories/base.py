"""
Base repository with generic CRUD operations.

All entity-specific repositories inherit from this.

Soft-deleted rows are excluded from reads by default. Pass
`include_deleted=True` to see them; the default is spelled out at every
call site instead of being applied by a hidden query hook.
"""
from typing import Any, Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.models.base import BaseModel

# Generic type for SQLAlchemy models
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository providing standard CRUD operations.

    Usage:
        class JobRepository(BaseRepository[Job]):
            def __init__(self):
                super().__init__(Job)
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    @property
    def soft_deletes(self) -> bool:
        return hasattr(self.model, "is_deleted")

    def _visible(self, query: Select, include_deleted: bool) -> Select:
        """Apply the default tombstone filter unless the caller opts out."""
        if self.soft_deletes and not include_deleted:
            query = query.where(self.model.is_deleted.is_(False))
        return query

    async def get_by_id(
        self,
        db: AsyncSession,
        id: UUID,
        *,
        include_deleted: bool = False,
        for_update: bool = False,
    ) -> Optional[ModelType]:
        """
        Get a single record by ID.

        for_update=True takes a row lock until the transaction ends; every
        read-check-write on a job or payment goes through it.
        """
        query = self._visible(select(self.model).where(self.model.id == id), include_deleted)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        **kwargs: Any,
    ) -> ModelType:
        """Create a new record."""
        instance = self.model(**kwargs)
        return await self.add(db, instance)

    async def add(
        self,
        db: AsyncSession,
        instance: ModelType,
    ) -> ModelType:
        """Persist an instance built elsewhere (e.g. by the lifecycle controller)."""
        db.add(instance)
        await db.flush()
        await db.refresh(instance)
        return instance

    async def delete(
        self,
        db: AsyncSession,
        id: UUID,
    ) -> bool:
        """Hard delete a record by ID."""
        result = await db.execute(
            delete(self.model).where(self.model.id == id)
        )
        return result.rowcount > 0

    async def restore(
        self,
        db: AsyncSession,
        instance: ModelType,
    ) -> ModelType:
        """Clear a tombstone."""
        instance.is_deleted = False
        instance.deleted_at = None
        await db.flush()
        return instance
