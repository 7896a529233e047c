"""
Database Model Enums
====================

Lightweight enumerations for database models.

These enums provide type-safe constants for categorical fields across the
schema. Columns store the string (or integer) value; services compare
against the enum members.
"""

from __future__ import annotations

import enum


class CharacterKind(str, enum.Enum):
    """Kinds of actor that can serve as crew."""

    CHARACTER = "character"
    NPC = "npc"


class CrewPosition(str, enum.Enum):
    """
    Fixed crew positions aboard a ship.

    The engineer may redistribute energy among the crew; the gunner fires
    weapon modules.
    """

    CAPTAIN = "captain"
    ENGINEER = "engineer"
    PILOT = "pilot"
    SENSOR_OPERATOR = "sensorOperator"
    GUNNER = "gunner"


class ModuleCategory(str, enum.Enum):
    """Ship module categories. Only weapons can be fired."""

    WEAPON = "weapon"
    ARMOR = "armor"
    ENGINE = "engine"
    SENSORS = "sensors"
    UTILITY = "utility"


class PermissionLevel(enum.IntEnum):
    """
    Ownership tiers the tabletop host grants a user over an entity.

    Ordered: a higher value includes every right of the lower ones.
    """

    NONE = 0
    LIMITED = 1
    OBSERVER = 2
    OWNER = 3
