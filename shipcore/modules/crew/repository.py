"""
Crew data access.

Replaces scanning every actor in the world: crew are found by the ship id
they point at. The pointer is weak, so rows may reference ships that no
longer exist; callers treat misses as no-ops.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import update

from shipcore.database.models import Character, CrewPosition
from shipcore.modules.shared.base_repository import BaseRepository

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession


class CrewRepository(BaseRepository[Character]):
    """Queries over crew-capable characters."""

    def __init__(self, logger: Logger) -> None:
        super().__init__(Character, logger)

    async def find_crew_by_ship(
        self,
        session: AsyncSession,
        ship_id: str,
        for_update: bool = False,
    ) -> List[Character]:
        return await self.find_many_where(
            session,
            Character.crew_ship_id == ship_id,
            for_update=for_update,
            order_by=[Character.name],
        )

    async def find_gunner(
        self, session: AsyncSession, ship_id: str
    ) -> Optional[Character]:
        return await self.find_one_where(
            session,
            Character.crew_ship_id == ship_id,
            Character.crew_position == CrewPosition.GUNNER.value,
            order_by=[Character.name],
        )

    async def clear_ship_reference(self, session: AsyncSession, ship_id: str) -> int:
        """
        Decouple every crew member pointing at ``ship_id``.

        Returns:
            Number of rows changed (0 when nothing pointed at the ship)
        """
        stmt = (
            update(Character)
            .where(Character.crew_ship_id == ship_id)
            .values(crew_ship_id=None)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        cleared = result.rowcount or 0

        self.log.debug(
            "Repository.clear_ship_reference: Character",
            extra={"model": "Character", "ship_id": ship_id, "cleared": cleared},
        )
        return cleared
