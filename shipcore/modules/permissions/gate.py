"""
Permission Gate

Purpose
-------
Answer "may this user do X to this entity" before any allocation or roll
is attempted. Predicates only: they never mutate, never log, and never
raise. Services turn a False into the matching domain exception.

Rules
-----
- Ship EP pool:        GM, or owner of the ship
- Crew EP allocation:  GM, owner of the ship, or owner of the crew member
                       serving as engineer on that ship
- Roll for crew:       GM, or owner of the crew member

Ownership comes from the entity's ``owner_levels`` map (user id or
"default" -> PermissionLevel value), as granted by the tabletop host.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Mapping, Optional, Union

from shipcore.database.models.enums import CrewPosition, PermissionLevel

if TYPE_CHECKING:
    from shipcore.database.models import Character, Ship


@dataclass(frozen=True)
class UserContext:
    """The acting user as reported by the host session."""

    user_id: str
    is_gm: bool = False


def permission_level(
    owner_levels: Optional[Mapping[str, int]], user_id: str
) -> int:
    """User's level on an entity, falling back to the entity default."""
    levels = owner_levels or {}
    return int(levels.get(user_id, levels.get("default", PermissionLevel.NONE)))


def has_owner_permission_level(level: Optional[Union[int, PermissionLevel]]) -> bool:
    if level is None:
        return False
    return int(level) >= PermissionLevel.OWNER


def is_owner(entity: Union[Ship, Character], user: UserContext) -> bool:
    return has_owner_permission_level(
        permission_level(entity.owner_levels, user.user_id)
    )


def can_change_ep_for_ship(ship: Ship, user: UserContext) -> bool:
    return user.is_gm or is_owner(ship, user)


def can_change_crew_ep(
    ship: Ship,
    user: UserContext,
    crew: Iterable[Character] = (),
) -> bool:
    """
    Crew EP rule: the ship rule, widened to the ship's engineer.

    ``crew`` may contain stale records; only members linked to this ship in
    the engineer position count.
    """
    if can_change_ep_for_ship(ship, user):
        return True
    return any(
        member.crew_ship_id == ship.id
        and member.crew_position == CrewPosition.ENGINEER.value
        and is_owner(member, user)
        for member in crew
    )


def can_roll_for_crew(crew_member: Character, user: UserContext) -> bool:
    return user.is_gm or is_owner(crew_member, user)
