"""
ShipService - ship lifecycle, modules and sheet overview
========================================================

Handles:
- Ship creation (blank tokens, full EP bar) and deletion (crew decoupled)
- Hull points
- Module toggling, quantities and weapon fire
- Building the sheet view model

Cross-entity effects are explicit calls in the owning workflow:
``delete_ship`` removes the ship, then asks CrewService to decouple the
crew. The two writes are separate transactions; a failure between them
leaves stale crew pointers, which every read path already skips.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from shipcore.core.database.base import new_entity_id
from shipcore.database.models import Ship
from shipcore.database.models.enums import CrewPosition, PermissionLevel
from shipcore.modules.crew.service import CrewService
from shipcore.modules.databar.formulas import prep_data_bar_blocks
from shipcore.modules.energy.allocation import EnergyPool
from shipcore.modules.energy.service import EnergyService
from shipcore.modules.permissions.gate import UserContext
from shipcore.modules.rolls.types import RollRequest, RollService
from shipcore.modules.shared.base_service import BaseService
from shipcore.modules.ship.overview import CrewEntry, ModuleEntry, ShipOverview
from shipcore.modules.ship.repository import ShipModuleRepository, ShipRepository
from shipcore.modules.ship.weapons import build_weapon_roll, can_fire, is_weapon

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from shipcore.core.config.manager import ConfigManager


class ShipService(BaseService):
    """
    Ship-level workflows.

    Business Logic:
    - New ships own ``energy.max_tokens_per_ship`` token records and start
      with ``max_energy_points`` of them active
    - Hull points stay within [0, hull_points_max]
    - Module quantities never go below 0
    - Weapons fire only when ``can_fire`` holds at the moment of firing
    - Missing ships and modules are no-ops (return None)
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        logger: Logger,
        energy_service: EnergyService,
        crew_service: CrewService,
        roll_service: Optional[RollService] = None,
        ship_repository: Optional[ShipRepository] = None,
        module_repository: Optional[ShipModuleRepository] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config_manager, logger, **kwargs)
        self._energy = energy_service
        self._crew = crew_service
        self._rolls = roll_service
        self._ships = ship_repository or ShipRepository(self.log)
        self._modules = module_repository or ShipModuleRepository(self.log)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def create_ship(
        self,
        name: str,
        owner_id: Optional[str] = None,
        max_energy_points: int = 0,
        hull_points_max: int = 0,
        hull_points_value: Optional[int] = None,
        owner_levels: Optional[Dict[str, int]] = None,
    ) -> Ship:
        """
        Create a ship with its token records and a full EP bar.

        Args:
            name: Ship name
            owner_id: User granted owner level on the ship
            max_energy_points: EP capacity
            hull_points_max: Hull capacity
            hull_points_value: Starting hull, defaults to full and is clamped
                to [0, hull_points_max]
            owner_levels: Extra permission entries (user id or "default")
        """
        levels = dict(owner_levels or {})
        if owner_id is not None:
            levels[owner_id] = int(PermissionLevel.OWNER)
        hull_max = max(int(hull_points_max), 0)
        hull_start = hull_max if hull_points_value is None else int(hull_points_value)

        async def _do(tx_session: AsyncSession) -> Ship:
            ship = Ship(
                id=new_entity_id(),
                name=name,
                owner_levels=levels,
                max_energy_points=max(int(max_energy_points), 0),
                hull_points_max=hull_max,
                hull_points_value=max(0, min(hull_start, hull_max)),
                ep_tokens=[],
                modules=[],
            )
            self._ships.add(tx_session, ship)
            self._energy.prime_new_ship(ship)
            await self._ships.flush(tx_session)
            return ship

        ship = await self.in_transaction("ship.create_ship", _do)
        self.log_operation(
            "create_ship",
            ship_id=ship.id,
            token_count=len(ship.ep_tokens),
            max_energy_points=ship.max_energy_points,
        )
        return ship

    async def delete_ship(self, ship_id: str) -> int:
        """
        Delete a ship, then decouple its crew.

        Tokens and modules go with the ship. Crew rows stay but lose their
        ship pointer. Repeating the call is harmless.

        Returns:
            Number of crew members decoupled
        """

        async def _do(tx_session: AsyncSession) -> bool:
            ship = await self._ships.get_for_update(tx_session, ship_id)
            if ship is None:
                return False
            await self._ships.delete(tx_session, ship)
            return True

        deleted = await self.in_transaction("ship.delete_ship", _do, ship_id=ship_id)
        cleared = await self._crew.reset_crew_for_ship(ship_id)

        self.log_operation(
            "delete_ship", ship_id=ship_id, deleted=deleted, crew_cleared=cleared
        )
        return cleared

    # -------------------------------------------------------------------------
    # Hull and modules
    # -------------------------------------------------------------------------

    async def set_hull_points(self, ship_id: str, value: int) -> Optional[int]:
        async def _do(tx_session: AsyncSession) -> Optional[int]:
            ship = await self._ships.get_for_update(tx_session, ship_id)
            if ship is None:
                return None
            ship.hull_points_value = max(0, min(int(value), ship.hull_points_max))
            return ship.hull_points_value

        return await self.in_transaction("ship.set_hull_points", _do, ship_id=ship_id)

    async def toggle_module(self, ship_id: str, module_id: str) -> Optional[bool]:
        """Flip a module's enabled flag; returns the new state."""

        async def _do(tx_session: AsyncSession) -> Optional[bool]:
            module = await self._modules.get_for_ship(
                tx_session, ship_id, module_id, for_update=True
            )
            if module is None:
                return None
            module.enabled = not module.enabled
            return module.enabled

        enabled = await self.in_transaction(
            "ship.toggle_module", _do, ship_id=ship_id, module_id=module_id
        )
        if enabled is not None:
            self.log_operation(
                "toggle_module", ship_id=ship_id, module_id=module_id, enabled=enabled
            )
        return enabled

    async def set_module_quantity(
        self, ship_id: str, module_id: str, quantity: int
    ) -> Optional[int]:
        async def _do(tx_session: AsyncSession) -> Optional[int]:
            module = await self._modules.get_for_ship(
                tx_session, ship_id, module_id, for_update=True
            )
            if module is None:
                return None
            module.quantity = max(int(quantity), 0)
            return module.quantity

        return await self.in_transaction(
            "ship.set_module_quantity", _do, ship_id=ship_id, module_id=module_id
        )

    async def fire_weapon(
        self,
        ship_id: str,
        module_id: str,
        user: UserContext,
        modifier: int = 0,
    ) -> Optional[RollRequest]:
        """
        Fire a weapon module with the ship's gunner.

        Returns:
            The submitted roll, or None when the weapon, the gunner or the
            authorization is missing
        """

        async def _load(read_session: AsyncSession):
            module = await self._modules.get_for_ship(read_session, ship_id, module_id)
            gunner = await self._crew.get_gunner_for_ship(ship_id, session=read_session)
            return module, gunner

        module, gunner = await self.in_session(_load)
        if module is None or gunner is None or not can_fire(module, gunner, user):
            return None

        request = build_weapon_roll(
            module,
            gunner,
            attribute_key=self.get_config("weapons.attribute", default="agility"),
            skill_key=self.get_config("weapons.skill", default="rangedcombat"),
            modifier=modifier,
        )
        if self._rolls is not None:
            await self._rolls.submit(request)

        self.log_operation(
            "fire_weapon",
            ship_id=ship_id,
            module_id=module_id,
            gunner_id=gunner.id,
            user_id=user.user_id,
        )
        return request

    # -------------------------------------------------------------------------
    # Overview
    # -------------------------------------------------------------------------

    async def build_overview(
        self, ship_id: str, user: UserContext
    ) -> Optional[ShipOverview]:
        async def _load(read_session: AsyncSession):
            ship = await self._ships.get_with_details(read_session, ship_id)
            if ship is None:
                return None, []
            roster = await self._crew.get_roster(ship_id, session=read_session)
            return ship, roster

        ship, roster = await self.in_session(_load)
        if ship is None:
            return None

        pool = EnergyPool.for_ship(ship)
        roster_ids = frozenset(member.id for member in roster)
        max_tokens = pool.get_max_allowed_ep_tokens()
        ship_ep = pool.ship_ep_count()
        names = self.get_config("crew.position_names", default={})

        crew_entries = []
        for member in roster:
            count = pool.crew_ep_count(member.id)
            crew_entries.append(
                CrewEntry(
                    crew_id=member.id,
                    name=member.name,
                    position=member.crew_position,
                    position_name=names.get(member.crew_position, member.crew_position or ""),
                    current_ep=count,
                    energy_blocks=prep_data_bar_blocks(count, max_tokens),
                )
            )

        gunner = next(
            (m for m in roster if m.crew_position == CrewPosition.GUNNER.value), None
        )
        module_entries = [
            ModuleEntry(
                module_id=module.id,
                name=module.name,
                category=module.category,
                enabled=bool(module.enabled),
                quantity=module.quantity,
                can_fire=is_weapon(module) and can_fire(module, gunner, user),
            )
            for module in ship.modules
        ]

        return ShipOverview(
            ship_id=ship.id,
            name=ship.name,
            hull_points_value=ship.hull_points_value,
            hull_points_max=ship.hull_points_max,
            max_energy_points=max_tokens,
            current_ship_ep=ship_ep,
            crew_has_tokens=pool.crew_has_tokens(roster_ids),
            hull_blocks=prep_data_bar_blocks(ship.hull_points_value, ship.hull_points_max),
            energy_blocks=prep_data_bar_blocks(ship_ep, max_tokens),
            crew=crew_entries,
            modules=module_entries,
        )
