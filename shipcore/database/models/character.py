"""
Character: player characters and NPCs that can crew a ship.
Pure schema only.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from shipcore.core.database.base import Base, IdMixin, TimestampMixin

from .enums import CharacterKind


class Character(Base, IdMixin, TimestampMixin):
    """
    Crew-capable actor.

    Schema-only:
    - kind: CharacterKind value
    - owner_levels: user id (or "default") -> PermissionLevel value
    - crew_ship_id: ship this actor crews. Lookup only, no FK: the ship
      does not own its crew and deleting a ship leaves the row in place
    - crew_position: CrewPosition value, or None
    - attributes: attribute key -> {"value": int}
    - skills: skill key -> {"value": int, "attribute": str, "category": str}
    """

    __tablename__ = "characters"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CharacterKind.CHARACTER.value,
    )

    owner_levels: Mapped[Dict[str, int]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    crew_ship_id: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        index=True,
    )

    crew_position: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    attributes: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    skills: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
