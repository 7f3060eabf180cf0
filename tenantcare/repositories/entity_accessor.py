"""
Generic CRUD accessor for one clinic entity bound to one tenant database.

Instances are created by the model factory, once per (tenant, entity), and
shared by every request resolving to that tenant. Each call opens its own
short-lived session; use `session()` for multi-step units of work.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenantcare.core.exceptions import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityAccessor(Generic[T]):
    """
    CRUD operations for `model` against a single tenant's session factory.

    Attributes:
        name: Logical entity name (e.g. "User")
        model: SQLAlchemy model class
        locator: Store locator of the tenant this accessor is bound to
    """

    def __init__(
        self,
        name: str,
        model: type[T],
        session_factory: async_sessionmaker[AsyncSession],
        locator: str,
    ) -> None:
        self.name = name
        self.model = model
        self.locator = locator
        self._session_factory = session_factory

    def __repr__(self) -> str:
        return f"<EntityAccessor({self.name}@{self.locator})>"

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session on this tenant's database; commits on success, rolls back on error."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"{self.name} violates a uniqueness constraint") from e
            except Exception:
                await session.rollback()
                raise

    def _filtered(self, filters: dict[str, Any]):
        stmt = select(self.model)
        for field, value in filters.items():
            stmt = stmt.where(getattr(self.model, field) == value)
        return stmt

    async def create(self, **values: Any) -> T:
        entity = self.model(**values)
        async with self.session() as session:
            session.add(entity)
            await session.flush()
            await session.refresh(entity)
        logger.debug(f"{self.name} created in {self.locator}")
        return entity

    async def get(self, entity_id: str) -> Optional[T]:
        async with self._session_factory() as session:
            return await session.get(self.model, entity_id)

    async def find_one(self, **filters: Any) -> Optional[T]:
        async with self._session_factory() as session:
            result = await session.execute(self._filtered(filters).limit(1))
            return result.scalars().first()

    async def find(
        self,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
        **filters: Any,
    ) -> list[T]:
        stmt = self._filtered(filters)
        if order_by:
            column = getattr(self.model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(self._filtered(filters).subquery())
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def exists(self, **filters: Any) -> bool:
        return await self.find_one(**filters) is not None

    async def update(self, entity_id: str, **values: Any) -> Optional[T]:
        """Apply `values` to the entity; returns None when it does not exist."""
        async with self.session() as session:
            entity = await session.get(self.model, entity_id)
            if entity is None:
                return None
            for field, value in values.items():
                if not hasattr(self.model, field):
                    raise AttributeError(f"{self.name} has no field '{field}'")
                setattr(entity, field, value)
            await session.flush()
            await session.refresh(entity)
            return entity

    async def delete(self, entity_id: str) -> bool:
        async with self.session() as session:
            entity = await session.get(self.model, entity_id)
            if entity is None:
                return False
            await session.delete(entity)
        return True
