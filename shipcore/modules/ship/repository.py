"""
Ship and ship module data access.

Every write path that touches a ship's tokens loads the ship with
``get_with_tokens`` so the token rows arrive in the same round trip and the
ship row is locked for the rest of the transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from shipcore.database.models import Ship, ShipModule
from shipcore.modules.shared.base_repository import BaseRepository

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession


class ShipRepository(BaseRepository[Ship]):
    def __init__(self, logger: Logger) -> None:
        super().__init__(Ship, logger)

    async def find_all_ships(self, session: AsyncSession) -> List[Ship]:
        return await self.find_many_where(session, order_by=[Ship.name])

    async def get_with_tokens(
        self,
        session: AsyncSession,
        ship_id: str,
        for_update: bool = True,
    ) -> Optional[Ship]:
        if for_update:
            return await self.get_for_update(
                session, ship_id, eager_load=[Ship.ep_tokens]
            )
        return await self.get(session, ship_id, eager_load=[Ship.ep_tokens])

    async def get_with_details(
        self, session: AsyncSession, ship_id: str
    ) -> Optional[Ship]:
        """Ship with tokens and modules, unlocked, for display."""
        return await self.get(
            session, ship_id, eager_load=[Ship.ep_tokens, Ship.modules]
        )


class ShipModuleRepository(BaseRepository[ShipModule]):
    def __init__(self, logger: Logger) -> None:
        super().__init__(ShipModule, logger)

    async def get_for_ship(
        self,
        session: AsyncSession,
        ship_id: str,
        module_id: str,
        for_update: bool = False,
    ) -> Optional[ShipModule]:
        """Module by id, only if it is installed on ``ship_id``."""
        return await self.find_one_where(
            session,
            ShipModule.id == module_id,
            ShipModule.ship_id == ship_id,
            for_update=for_update,
        )

    async def find_by_ship(
        self, session: AsyncSession, ship_id: str
    ) -> List[ShipModule]:
        return await self.find_many_where(
            session,
            ShipModule.ship_id == ship_id,
            order_by=[ShipModule.name],
        )
