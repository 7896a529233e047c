"""
Ship Sheet Controller

Purpose
-------
Adapter between the tabletop's ship sheet and the Shipcore services. Each
handler takes the raw click payload, turns it into one service call and
reports the outcome through the host's notification service.

Responsibilities
----------------
- Translate bar-segment clicks into target values (one rule for every bar)
- Call the owning service with the acting user
- Convert domain exceptions into notifications keyed by ``error_code``
- Announce ``EnergyPointsReset`` when a ship-pool change reclaimed crew EP

Non-Responsibilities
--------------------
- Rendering (the host re-renders from ``ShipService.build_overview``)
- Allocation or permission rules (services and the permission gate)
- Persistence failures, which propagate to the host's event handler
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional, Protocol

from shipcore.core.logging.logger import LogContext, get_logger
from shipcore.modules.databar.formulas import parse_bar_click
from shipcore.modules.shared.exceptions import ErrorSeverity, ShipcoreDomainException

if TYPE_CHECKING:
    from shipcore.modules.crew.service import CrewService
    from shipcore.modules.energy.allocation import AllocationChange
    from shipcore.modules.energy.service import EnergyService
    from shipcore.modules.permissions.gate import UserContext
    from shipcore.modules.rolls.types import RollRequest
    from shipcore.modules.ship.overview import ShipOverview
    from shipcore.modules.ship.service import ShipService

logger = get_logger(__name__)

ENERGY_POINTS_RESET = "EnergyPointsReset"


class Notifier(Protocol):
    """Host notification service: shows a localized message by key."""

    def notify(self, level: str, key: str) -> Any: ...


class ShipSheetController:
    """
    Click handlers for one ship sheet.

    Every handler returns the service result, or None when the action was
    refused or had nothing to act on.
    """

    component = "ship_sheet"

    def __init__(
        self,
        ship_service: ShipService,
        energy_service: EnergyService,
        crew_service: CrewService,
        notifier: Notifier,
    ) -> None:
        self._ships = ship_service
        self._energy = energy_service
        self._crew = crew_service
        self._notifier = notifier

    # ========================================================================
    # ERROR HANDLING
    # ========================================================================

    def handle_domain_error(self, error: ShipcoreDomainException, operation: str) -> None:
        """Notify the user; log only what is worth an operator's attention."""
        if error.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            logger.error(
                f"{self.component}.{operation} failed: {error}",
                extra={
                    "operation": operation,
                    "error_code": error.error_code,
                    "error_type": type(error).__name__,
                    "details": error.details,
                },
            )
        elif error.severity is ErrorSeverity.WARNING:
            logger.warning(
                f"{self.component}.{operation} rejected: {error}",
                extra={"operation": operation, "error_code": error.error_code},
            )
        self._notifier.notify("error", error.error_code)

    # ========================================================================
    # BARS
    # ========================================================================

    async def on_ship_energy_click(
        self, ship_id: str, dataset: Mapping[str, Any], user: UserContext
    ) -> Optional[AllocationChange]:
        new_value = parse_bar_click(dataset).new_value
        async with LogContext(
            user_id=user.user_id,
            ship_id=ship_id,
            component=self.component,
            operation="ship_energy_click",
        ):
            try:
                change = await self._energy.set_active_ep_tokens(ship_id, new_value, user)
            except ShipcoreDomainException as e:
                self.handle_domain_error(e, "ship_energy_click")
                return None

        if change is not None and change.crew_reset:
            self._notifier.notify("info", ENERGY_POINTS_RESET)
        return change

    async def on_crew_energy_click(
        self,
        ship_id: str,
        crew_id: str,
        dataset: Mapping[str, Any],
        user: UserContext,
    ) -> Optional[AllocationChange]:
        new_value = parse_bar_click(dataset).new_value
        async with LogContext(
            user_id=user.user_id,
            ship_id=ship_id,
            component=self.component,
            operation="crew_energy_click",
            crew_id=crew_id,
        ):
            try:
                return await self._energy.set_crew_ep_count(
                    ship_id, crew_id, new_value, user
                )
            except ShipcoreDomainException as e:
                self.handle_domain_error(e, "crew_energy_click")
                return None

    async def on_hull_click(
        self, ship_id: str, dataset: Mapping[str, Any]
    ) -> Optional[int]:
        new_value = parse_bar_click(dataset).new_value
        try:
            return await self._ships.set_hull_points(ship_id, new_value)
        except ShipcoreDomainException as e:
            self.handle_domain_error(e, "hull_click")
            return None

    # ========================================================================
    # MODULES AND ROLLS
    # ========================================================================

    async def on_toggle_module(self, ship_id: str, module_id: str) -> Optional[bool]:
        try:
            return await self._ships.toggle_module(ship_id, module_id)
        except ShipcoreDomainException as e:
            self.handle_domain_error(e, "toggle_module")
            return None

    async def on_fire_weapon(
        self,
        ship_id: str,
        module_id: str,
        user: UserContext,
        modifier: int = 0,
    ) -> Optional[RollRequest]:
        async with LogContext(
            user_id=user.user_id,
            ship_id=ship_id,
            component=self.component,
            operation="fire_weapon",
        ):
            try:
                return await self._ships.fire_weapon(ship_id, module_id, user, modifier)
            except ShipcoreDomainException as e:
                self.handle_domain_error(e, "fire_weapon")
                return None

    async def on_roll_crew_position(
        self,
        ship_id: str,
        crew_id: str,
        user: UserContext,
        modifier: int = 0,
    ) -> Optional[RollRequest]:
        async with LogContext(
            user_id=user.user_id,
            ship_id=ship_id,
            component=self.component,
            operation="roll_crew_position",
            crew_id=crew_id,
        ):
            try:
                return await self._crew.roll_crew_position(
                    ship_id, crew_id, user, modifier
                )
            except ShipcoreDomainException as e:
                self.handle_domain_error(e, "roll_crew_position")
                return None

    async def render(self, ship_id: str, user: UserContext) -> Optional[ShipOverview]:
        return await self._ships.build_overview(ship_id, user)
