"""
Ship weapon rules.

``can_fire`` is derived on every read and never stored: a weapon module
fires only when a gunner is aboard, the acting user is GM or owns that
gunner, and the module is switched on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from shipcore.database.models.enums import ModuleCategory
from shipcore.modules.permissions.gate import UserContext, is_owner
from shipcore.modules.rolls.types import RollRequest

if TYPE_CHECKING:
    from shipcore.database.models import Character, ShipModule


def is_weapon(module: ShipModule) -> bool:
    return module.category == ModuleCategory.WEAPON.value


def can_fire(
    module: ShipModule,
    gunner: Optional[Character],
    user: UserContext,
) -> bool:
    if not is_weapon(module):
        return False
    if gunner is None:
        return False
    if not (user.is_gm or is_owner(gunner, user)):
        return False
    return bool(module.enabled)


def _stat(block: dict, key: Optional[str]) -> int:
    if not key:
        return 0
    entry = (block or {}).get(key) or {}
    try:
        return int(entry.get("value", 0))
    except (TypeError, ValueError):
        return 0


def build_weapon_roll(
    module: ShipModule,
    gunner: Character,
    attribute_key: str,
    skill_key: str,
    modifier: int = 0,
) -> RollRequest:
    """Weapon attack for ``gunner`` firing ``module``."""
    features = ", ".join(str(f) for f in (module.special or []))
    return RollRequest(
        actor_id=gunner.id,
        actor_type=gunner.kind,
        roll_type="weapon",
        title=module.name,
        attribute_key=attribute_key,
        attribute=_stat(gunner.attributes, attribute_key),
        skill_key=skill_key,
        skill=_stat(gunner.skills, skill_key),
        modifier=modifier,
        bonus=int(module.bonus or 0),
        damage=module.damage,
        damage_text=module.damage_text or "",
        range=module.range or "",
        crit=module.crit_value,
        crit_text=module.crit_text or "",
        features=features,
        automatic=bool(module.automatic),
        is_ship_weapon=True,
    )
