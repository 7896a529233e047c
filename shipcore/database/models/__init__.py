"""
Database Models Package
========================

SQLAlchemy ORM models for Shipcore.

All models:
- Schema-only, no business logic
- Use Mapped[] syntax with mapped_column()
- Inherit from IdMixin / TimestampMixin where applicable
- Explicit foreign keys with CASCADE where the parent owns the child

Entity variants
---------------
``Entity`` is the closed union of the things the tabletop host stores:
a ship, a crew-capable character, or an item (ship module). Consumers
dispatch on the concrete class.
"""

from typing import Union

from shipcore.core.database.base import Base

from .character import Character
from .enums import CharacterKind, CrewPosition, ModuleCategory, PermissionLevel
from .ship import EPToken, Ship
from .ship_module import ShipModule

Entity = Union[Ship, Character, ShipModule]

__all__ = [
    "Base",
    "Character",
    "CharacterKind",
    "CrewPosition",
    "EPToken",
    "Entity",
    "ModuleCategory",
    "PermissionLevel",
    "Ship",
    "ShipModule",
]
