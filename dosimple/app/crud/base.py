"""
Generic async CRUD base class.
All domain-specific CRUD classes extend CRUDBase and inherit these methods.
"""
from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """
    Generic CRUD operations for SQLAlchemy async ORM models
    keyed by an integer primary key.
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model = model

    async def get(self, db: AsyncSession, id: int) -> ModelType | None:
        """Fetch a single record by primary key."""
        return await db.get(self.model, id)

    async def get_many(self, db: AsyncSession, ids: list[int]) -> list[ModelType]:
        """Fetch every record whose primary key is in ids; unknown ids are skipped."""
        if not ids:
            return []
        result = await db.execute(
            select(self.model).where(self.model.id.in_(set(ids)))  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def get_count(self, db: AsyncSession) -> int:
        """Return total count of records in the table."""
        result = await db.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()

    async def add(self, db: AsyncSession, db_obj: ModelType) -> ModelType:
        """Persist a new ORM instance and load its generated columns."""
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: dict[str, Any],
    ) -> ModelType:
        """Apply a dict of field values to an existing record."""
        for field, value in obj_in.items():
            setattr(db_obj, field, value)

        db.add(db_obj)
        await db.flush()
        return db_obj

    async def remove(self, db: AsyncSession, *, db_obj: ModelType) -> None:
        await db.delete(db_obj)
        await db.flush()
