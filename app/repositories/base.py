"""
Generic async repository (Data Access Layer).

Implements the Repository pattern on top of SQLAlchemy's ``AsyncSession``.
Concrete repositories inherit from ``BaseRepository[T]`` and add
entity-specific queries.

- **IntegrityError** is NOT caught here: the service decides what a
  constraint violation means (e.g. a duplicate phone is a field error).
- **OperationalError** (connection loss, deadlock) rolls the session back
  before re-raising so a dirty transaction never leaks into the next call.
"""

import logging
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic CRUD repository for SQLModel entities.

    Parameters
    ----------
    model : Type[ModelType]
        The SQLModel class this repository manages.
    db : AsyncSession
        An active async database session (injected per-request).
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except OperationalError:
            await self.db.rollback()
            logger.error("OperationalError during %s for %s", action, self.model.__name__)
            raise

    async def get(self, id: Any) -> Optional[ModelType]:
        """Fetch a single entity by primary key.  Returns ``None`` if not found."""
        return await self.db.get(self.model, id)

    async def create(self, obj_in: ModelType) -> ModelType:
        """Insert a new entity and return the refreshed instance."""
        self.db.add(obj_in)
        await self._commit("create")
        await self.db.refresh(obj_in)
        return obj_in

    async def update(self, entity: ModelType) -> ModelType:
        """
        Persist changes to an already-loaded entity.

        The caller mutates the entity's attributes first; this merges,
        commits and refreshes so DB-side values are reflected.
        """
        merged = await self.db.merge(entity)
        await self._commit("update")
        await self.db.refresh(merged)
        return merged

    async def delete(self, entity: ModelType) -> None:
        """Delete an already-loaded entity."""
        await self.db.delete(entity)
        await self._commit("delete")
