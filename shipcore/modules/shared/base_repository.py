"""
Base Repository Pattern

Purpose
-------
Generic async data access for Shipcore models. Repositories wrap SQLAlchemy
2.0 select statements behind a small, logged interface so services never
build queries inline.

Design Notes
------------
- Pure data access: no allocation rules, no permission checks
- Transactions are owned by the caller (services via DatabaseService)
- Row locks (SELECT ... FOR UPDATE) are opt-in per call; every operation
  that rewrites a ship's tokens locks the ship row first
- Relationship loading is explicit through ``eager_load``

Usage
-----
    class CharacterRepository(BaseRepository[Character]):
        async def find_crew_by_ship(self, session, ship_id):
            return await self.find_many_where(
                session, Character.crew_ship_id == ship_id
            )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Generic repository over one mapped model class.

    Type Parameters:
        T: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    def _select(
        self,
        *conditions: ColumnElement[bool],
        eager_load: Optional[List[InstrumentedAttribute]] = None,
        for_update: bool = False,
        order_by: Optional[Sequence[Any]] = None,
    ):
        stmt = select(self.model_class).where(*conditions)
        if for_update:
            stmt = stmt.with_for_update()
        for relationship in eager_load or ():
            stmt = stmt.options(selectinload(relationship))
        if order_by:
            stmt = stmt.order_by(*order_by)
        return stmt

    async def get(
        self,
        session: AsyncSession,
        id_value: Any,
        eager_load: Optional[List[InstrumentedAttribute]] = None,
    ) -> Optional[T]:
        """Fetch one row by primary key, or None."""
        stmt = self._select(
            self.model_class.id == id_value,  # type: ignore[attr-defined]
            eager_load=eager_load,
        )
        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.get: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "id": id_value,
                "found": instance is not None,
            },
        )
        return instance

    async def get_for_update(
        self,
        session: AsyncSession,
        id_value: Any,
        eager_load: Optional[List[InstrumentedAttribute]] = None,
    ) -> Optional[T]:
        """
        Fetch one row by primary key holding a row lock until the
        surrounding transaction ends.
        """
        stmt = self._select(
            self.model_class.id == id_value,  # type: ignore[attr-defined]
            eager_load=eager_load,
            for_update=True,
        )
        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.get_for_update: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "id": id_value,
                "found": instance is not None,
                "locked": True,
            },
        )
        return instance

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        eager_load: Optional[List[InstrumentedAttribute]] = None,
        for_update: bool = False,
        order_by: Optional[Sequence[Any]] = None,
    ) -> Optional[T]:
        """First row matching all conditions in ``order_by`` order, or None."""
        stmt = self._select(
            *conditions,
            eager_load=eager_load,
            for_update=for_update,
            order_by=order_by,
        ).limit(1)
        result = await session.execute(stmt)
        instance = result.scalars().first()

        self.log.debug(
            f"Repository.find_one_where: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "found": instance is not None,
                "locked": for_update,
            },
        )
        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        eager_load: Optional[List[InstrumentedAttribute]] = None,
        for_update: bool = False,
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
    ) -> List[T]:
        """
        All rows matching the conditions.

        Args:
            session: Database session
            *conditions: SQLAlchemy filter conditions
            eager_load: Relationships to load with selectinload
            for_update: Lock every returned row
            order_by: Columns to order by
            limit: Maximum number of rows
        """
        stmt = self._select(
            *conditions,
            eager_load=eager_load,
            for_update=for_update,
            order_by=order_by,
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.find_many_where: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "found_count": len(instances),
                "locked": for_update,
                "limit": limit,
            },
        )
        return instances

    def add(self, session: AsyncSession, instance: T) -> T:
        session.add(instance)
        self.log.debug(
            f"Repository.add: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__},
        )
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        await session.delete(instance)
        self.log.debug(
            f"Repository.delete: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__},
        )

    async def flush(self, session: AsyncSession) -> None:
        """Push pending changes so generated ids and defaults are populated."""
        await session.flush()
        self.log.debug(
            f"Repository.flush: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__},
        )
