"""
Ship Module
===========

- ShipRepository / ShipModuleRepository: data access
- weapons: ``can_fire`` and weapon roll construction
- overview: sheet view model

ShipService (``shipcore.modules.ship.service``) depends on the energy and
crew services and is imported from its module directly.
"""

from .overview import CrewEntry, ModuleEntry, ShipOverview
from .repository import ShipModuleRepository, ShipRepository
from .weapons import build_weapon_roll, can_fire, is_weapon

__all__ = [
    "CrewEntry",
    "ModuleEntry",
    "ShipModuleRepository",
    "ShipOverview",
    "ShipRepository",
    "build_weapon_roll",
    "can_fire",
    "is_weapon",
]
