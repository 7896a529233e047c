"""View model for a ship sheet: everything the presentation layer renders."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from shipcore.modules.databar.formulas import BarSegment


@dataclass(frozen=True)
class CrewEntry:
    crew_id: str
    name: str
    position: Optional[str]
    position_name: str
    current_ep: int
    energy_blocks: List[BarSegment] = field(default_factory=list)


@dataclass(frozen=True)
class ModuleEntry:
    module_id: str
    name: str
    category: str
    enabled: bool
    quantity: int
    can_fire: bool = False


@dataclass(frozen=True)
class ShipOverview:
    ship_id: str
    name: str
    hull_points_value: int
    hull_points_max: int
    max_energy_points: int
    current_ship_ep: int
    crew_has_tokens: bool
    hull_blocks: List[BarSegment] = field(default_factory=list)
    energy_blocks: List[BarSegment] = field(default_factory=list)
    crew: List[CrewEntry] = field(default_factory=list)
    modules: List[ModuleEntry] = field(default_factory=list)
