"""
CrewService - ship crew roster and crew rolls
=============================================

Handles:
- Roster lookup in fixed position order
- Finding a ship's gunner
- Decoupling crew from a deleted ship
- Crew-position skill rolls from the ship sheet

Crew rows point at their ship by id only. Rows whose pointer no longer
matches are skipped, never reported.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, List, Optional

from shipcore.database.models import Character, CrewPosition
from shipcore.modules.crew.repository import CrewRepository
from shipcore.modules.permissions.gate import UserContext, can_roll_for_crew
from shipcore.modules.rolls.types import RollRequest, RollService
from shipcore.modules.shared.base_service import BaseService
from shipcore.modules.shared.exceptions import InvalidCrewRollPermissionsError
from shipcore.modules.ship.repository import ShipRepository

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from shipcore.core.config.manager import ConfigManager


class CrewService(BaseService):
    def __init__(
        self,
        config_manager: ConfigManager,
        logger: Logger,
        roll_service: Optional[RollService] = None,
        crew_repository: Optional[CrewRepository] = None,
        ship_repository: Optional[ShipRepository] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config_manager, logger, **kwargs)
        self._rolls = roll_service
        self._crew = crew_repository or CrewRepository(self.log)
        self._ships = ship_repository or ShipRepository(self.log)

    # -------------------------------------------------------------------------
    # Roster
    # -------------------------------------------------------------------------

    def sort_roster(self, crew: Iterable[Character], ship_id: str) -> List[Character]:
        """
        Members linked to ``ship_id`` in position order.

        Members without a known position go last.
        """
        order = self.get_config(
            "crew.position_order", default=[p.value for p in CrewPosition]
        )
        rank = {position: i for i, position in enumerate(order)}
        linked = [member for member in crew if member.crew_ship_id == ship_id]
        return sorted(linked, key=lambda m: rank.get(m.crew_position, len(rank)))

    async def get_roster(
        self, ship_id: str, session: Optional[AsyncSession] = None
    ) -> List[Character]:
        async def _do(read_session: AsyncSession) -> List[Character]:
            crew = await self._crew.find_crew_by_ship(read_session, ship_id)
            return self.sort_roster(crew, ship_id)

        return await self.in_session(_do, session)

    async def get_gunner_for_ship(
        self, ship_id: str, session: Optional[AsyncSession] = None
    ) -> Optional[Character]:
        async def _do(read_session: AsyncSession) -> Optional[Character]:
            return await self._crew.find_gunner(read_session, ship_id)

        return await self.in_session(_do, session)

    async def reset_crew_for_ship(
        self, ship_id: str, session: Optional[AsyncSession] = None
    ) -> int:
        """
        Clear the ship pointer of every crew member aboard ``ship_id``.

        Safe to repeat: a second call finds nothing and returns 0.
        """

        async def _do(tx_session: AsyncSession) -> int:
            return await self._crew.clear_ship_reference(tx_session, ship_id)

        cleared = await self.in_transaction(
            "crew.reset_crew_for_ship", _do, session, ship_id=ship_id
        )
        self.log_operation("reset_crew_for_ship", ship_id=ship_id, cleared=cleared)
        return cleared

    # -------------------------------------------------------------------------
    # Rolls
    # -------------------------------------------------------------------------

    def build_position_roll(
        self,
        crew_member: Character,
        ship_name: str,
        modifier: int = 0,
    ) -> Optional[RollRequest]:
        """
        Skill roll for the member's crew position, or None when the member
        has no position or no matching skill.
        """
        position = crew_member.crew_position
        rolls = self.get_config("crew.position_rolls", default={})
        names = self.get_config("crew.position_names", default={})
        skill_key = rolls.get(position) if position else None
        if not skill_key:
            return None

        skill = (crew_member.skills or {}).get(skill_key)
        if skill is None:
            return None
        attribute_key = skill.get("attribute")
        attribute = (crew_member.attributes or {}).get(attribute_key) or {}

        return RollRequest(
            actor_id=crew_member.id,
            actor_type=crew_member.kind,
            roll_type=skill.get("category", "general"),
            title=f"{names.get(position, position)} ({ship_name})",
            attribute_key=attribute_key,
            attribute=int(attribute.get("value", 0)),
            skill_key=skill_key,
            skill=int(skill.get("value", 0)),
            modifier=modifier,
        )

    async def roll_crew_position(
        self,
        ship_id: str,
        crew_id: str,
        user: UserContext,
        modifier: int = 0,
    ) -> Optional[RollRequest]:
        """
        Roll the skill tied to a crew member's position aboard ``ship_id``.

        Returns:
            The submitted request, or None when ship or crew member is gone

        Raises:
            InvalidCrewRollPermissionsError: user is neither GM nor owner of
                the crew member
        """

        async def _load(read_session: AsyncSession):
            ship = await self._ships.get(read_session, ship_id)
            member = await self._crew.get(read_session, crew_id)
            return ship, member

        ship, member = await self.in_session(_load)
        if ship is None or member is None:
            return None
        if not can_roll_for_crew(member, user):
            raise InvalidCrewRollPermissionsError(crew_id, user.user_id)

        request = self.build_position_roll(member, ship.name, modifier)
        if request is None:
            return None

        if self._rolls is not None:
            await self._rolls.submit(request)
        self.log_operation(
            "roll_crew_position",
            ship_id=ship_id,
            crew_id=crew_id,
            user_id=user.user_id,
            skill_key=request.skill_key,
        )
        return request
