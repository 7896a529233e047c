"""
EnergyService - persisted, authorized EP allocation
===================================================

Handles:
- Creating a ship's blank token records
- Activating the ship pool (reclaims every crew holding)
- Moving tokens between the ship pool and a crew member
- Read-only energy summaries

Each mutating call is one read-modify-write in one transaction with the ship
row locked. Allocation rules live in ``EnergyPool``; this service adds
loading, authorization, persistence and logging around them.

Denied requests raise after the transaction block, having changed nothing
and logged nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Optional

from shipcore.database.models import EPToken
from shipcore.modules.crew.repository import CrewRepository
from shipcore.modules.energy.allocation import (
    AllocationChange,
    EnergyPool,
    is_valid_token_count,
)
from shipcore.modules.permissions.gate import (
    UserContext,
    can_change_crew_ep,
    can_change_ep_for_ship,
)
from shipcore.modules.shared.base_service import BaseService
from shipcore.modules.shared.exceptions import InvalidEPPermissionsError
from shipcore.modules.ship.repository import ShipRepository

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from shipcore.core.config.manager import ConfigManager
    from shipcore.database.models import Ship


@dataclass(frozen=True)
class EnergySummary:
    ship_id: str
    max_energy_points: int
    ship_ep: int
    crew: Dict[str, int]
    crew_has_tokens: bool


class EnergyService(BaseService):
    """
    EP allocation entry points.

    Business Logic:
    - Ship pool changes: GM or ship owner
    - Crew allocation changes: GM, ship owner, or the ship's engineer
    - Out-of-range counts are clamped, never rejected
    - Unknown ships and unlinked crew members are no-ops (return None)
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        logger: Logger,
        ship_repository: Optional[ShipRepository] = None,
        crew_repository: Optional[CrewRepository] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config_manager, logger, **kwargs)
        self._ships = ship_repository or ShipRepository(self.log)
        self._crew = crew_repository or CrewRepository(self.log)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def prime_new_ship(self, ship: Ship) -> Optional[AllocationChange]:
        """
        Give a freshly built ship its token records and a full EP bar.

        Operates on an in-memory ship inside the caller's transaction.
        """
        total = self._config.get_int("energy.max_tokens_per_ship", 10)
        pool = EnergyPool.for_ship(ship)
        pool.create_blank_tokens(total, factory=_new_token)
        if not ship.max_energy_points:
            return None
        return pool.set_active_ep_tokens(ship.max_energy_points)

    async def create_blank_tokens(
        self,
        ship_id: str,
        total_count: int,
        session: Optional[AsyncSession] = None,
    ) -> Optional[int]:
        """
        Ensure ``total_count`` token records exist for a ship.

        Returns:
            Number of records created (0 for a non-positive count), or None
            if the ship does not exist
        """
        if not is_valid_token_count(total_count):
            self.log.debug(
                "create_blank_tokens ignored",
                extra={"ship_id": ship_id, "total_count": repr(total_count)},
            )
            return 0

        async def _do(tx_session: AsyncSession) -> Optional[int]:
            ship = await self._ships.get_with_tokens(tx_session, ship_id)
            if ship is None:
                return None
            created = EnergyPool.for_ship(ship).create_blank_tokens(
                total_count, factory=_new_token
            )
            await self._ships.flush(tx_session)
            return len(created)

        created = await self.in_transaction(
            "energy.create_blank_tokens", _do, session, ship_id=ship_id
        )
        if created is not None:
            self.log_operation(
                "create_blank_tokens",
                ship_id=ship_id,
                total_count=total_count,
                created_count=created,
            )
        return created

    # -------------------------------------------------------------------------
    # Allocation
    # -------------------------------------------------------------------------

    async def set_active_ep_tokens(
        self,
        ship_id: str,
        new_count: int,
        user: UserContext,
        session: Optional[AsyncSession] = None,
    ) -> Optional[AllocationChange]:
        """
        Set the ship pool to ``new_count`` active tokens.

        Every crew allocation is reclaimed; ``crew_reset`` on the result is
        True when crew still on the ship actually held tokens.

        Raises:
            InvalidEPPermissionsError: user is neither GM nor ship owner
        """
        denied = False

        async def _do(tx_session: AsyncSession) -> Optional[AllocationChange]:
            nonlocal denied
            ship = await self._ships.get_with_tokens(tx_session, ship_id)
            if ship is None:
                return None
            if not can_change_ep_for_ship(ship, user):
                denied = True
                return None
            roster = await self._roster_ids(tx_session, ship_id)
            return EnergyPool.for_ship(ship).set_active_ep_tokens(new_count, roster)

        change = await self.in_transaction(
            "energy.set_active_ep_tokens", _do, session, ship_id=ship_id
        )
        if denied:
            raise InvalidEPPermissionsError(ship_id, user.user_id, scope="ship")

        if change is not None:
            self.log_operation(
                "set_active_ep_tokens",
                ship_id=ship_id,
                user_id=user.user_id,
                requested=change.requested,
                applied=change.applied,
                crew_reset=change.crew_reset,
            )
        return change

    async def set_crew_ep_count(
        self,
        ship_id: str,
        crew_id: str,
        new_count: int,
        user: UserContext,
        session: Optional[AsyncSession] = None,
    ) -> Optional[AllocationChange]:
        """
        Set how many of the ship's active tokens ``crew_id`` holds.

        Raises:
            InvalidEPPermissionsError: user is not GM, ship owner or the
                ship's engineer
        """
        denied = False

        async def _do(tx_session: AsyncSession) -> Optional[AllocationChange]:
            nonlocal denied
            ship = await self._ships.get_with_tokens(tx_session, ship_id)
            if ship is None:
                return None
            crew = await self._crew.find_crew_by_ship(tx_session, ship_id)
            if not can_change_crew_ep(ship, user, crew):
                denied = True
                return None
            if not any(member.id == crew_id for member in crew):
                return None
            return EnergyPool.for_ship(ship).set_crew_ep_count(crew_id, new_count)

        change = await self.in_transaction(
            "energy.set_crew_ep_count", _do, session, ship_id=ship_id
        )
        if denied:
            raise InvalidEPPermissionsError(ship_id, user.user_id, scope="crew")

        if change is not None:
            self.log_operation(
                "set_crew_ep_count",
                ship_id=ship_id,
                crew_id=crew_id,
                user_id=user.user_id,
                requested=change.requested,
                applied=change.applied,
            )
        return change

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_energy_summary(
        self, ship_id: str, session: Optional[AsyncSession] = None
    ) -> Optional[EnergySummary]:
        async def _do(read_session: AsyncSession) -> Optional[EnergySummary]:
            ship = await self._ships.get_with_tokens(
                read_session, ship_id, for_update=False
            )
            if ship is None:
                return None
            roster = await self._roster_ids(read_session, ship_id)
            pool = EnergyPool.for_ship(ship)
            return EnergySummary(
                ship_id=ship.id,
                max_energy_points=pool.get_max_allowed_ep_tokens(),
                ship_ep=pool.ship_ep_count(),
                crew=pool.crew_ledger(roster),
                crew_has_tokens=pool.crew_has_tokens(roster),
            )

        return await self.in_session(_do, session)

    async def _roster_ids(self, session: AsyncSession, ship_id: str) -> FrozenSet[str]:
        """Ids of crew currently linked to the ship; other holders are stale."""
        crew = await self._crew.find_crew_by_ship(session, ship_id)
        return frozenset(member.id for member in crew)


def _new_token(slot: int) -> EPToken:
    return EPToken(slot=slot, active=False, holder_id=None)
