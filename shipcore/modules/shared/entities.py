"""
Dispatch over the closed set of entity variants (ship, character, module).
"""

from __future__ import annotations

from typing import Any, Dict

from shipcore.database.models import Character, Entity, Ship, ShipModule


def describe_entity(entity: Entity) -> Dict[str, Any]:
    """
    Small structured description of an entity, for logs and notifications.

    Raises:
        TypeError: ``entity`` is not one of the known variants
    """
    if isinstance(entity, Ship):
        return {
            "kind": "ship",
            "id": entity.id,
            "name": entity.name,
            "max_energy_points": entity.max_energy_points,
        }
    if isinstance(entity, Character):
        return {
            "kind": entity.kind,
            "id": entity.id,
            "name": entity.name,
            "crew_ship_id": entity.crew_ship_id,
            "crew_position": entity.crew_position,
        }
    if isinstance(entity, ShipModule):
        return {
            "kind": "item",
            "item_kind": entity.category,
            "id": entity.id,
            "name": entity.name,
            "ship_id": entity.ship_id,
        }
    raise TypeError(f"Unknown entity variant: {type(entity).__name__}")
