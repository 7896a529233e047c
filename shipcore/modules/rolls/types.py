"""
Roll request types.

Dice mechanics belong to the host's roll service. This module only defines
the request shape Shipcore hands over and the protocol the service meets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


@dataclass(frozen=True)
class RollRequest:
    """
    Everything the roll service needs to roll and display a result.

    Weapon fields stay at their defaults for plain skill rolls.
    """

    actor_id: str
    actor_type: str
    roll_type: str
    title: str
    attribute_key: Optional[str] = None
    attribute: int = 0
    skill_key: Optional[str] = None
    skill: int = 0
    modifier: int = 0
    bonus: int = 0
    pushed: bool = False
    damage: Optional[int] = None
    damage_text: str = ""
    range: str = ""
    crit: Optional[int] = None
    crit_text: str = ""
    features: str = ""
    automatic: bool = False
    is_ship_weapon: bool = False
    additional_data: Dict[str, Any] = field(default_factory=dict)


class RollService(Protocol):
    """Host collaborator that rolls dice and shows the result."""

    async def submit(self, request: RollRequest) -> Any: ...
