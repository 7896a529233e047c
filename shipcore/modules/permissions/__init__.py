"""Permission predicates for ship and crew actions."""

from .gate import (
    UserContext,
    can_change_crew_ep,
    can_change_ep_for_ship,
    can_roll_for_crew,
    has_owner_permission_level,
    is_owner,
    permission_level,
)

__all__ = [
    "UserContext",
    "can_change_crew_ep",
    "can_change_ep_for_ship",
    "can_roll_for_crew",
    "has_owner_permission_level",
    "is_owner",
    "permission_level",
]
