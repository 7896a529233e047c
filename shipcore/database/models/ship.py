"""
Ship and EPToken: a starship and its pre-allocated energy-point tokens.
Pure schema; allocation rules live in shipcore.modules.energy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shipcore.core.database.base import Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from .ship_module import ShipModule


class Ship(Base, IdMixin, TimestampMixin):
    """
    Starship entity.

    Schema-only:
    - owner_levels: user id (or "default") -> PermissionLevel value
    - max_energy_points: EP capacity; ceiling for the bar and every allocation
    - hull_points_value / hull_points_max: hull bar
    - ep_tokens: token records, created in bulk with the ship
    - modules: installed ship modules
    """

    __tablename__ = "ships"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    owner_levels: Mapped[Dict[str, int]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    max_energy_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    hull_points_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hull_points_max: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    ep_tokens: Mapped[List["EPToken"]] = relationship(
        "EPToken",
        back_populates="ship",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="EPToken.slot",
    )

    modules: Mapped[List["ShipModule"]] = relationship(
        "ShipModule",
        back_populates="ship",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ShipModule.name",
    )


class EPToken(Base, IdMixin):
    """
    One energy point.

    - active: spent from the ship's reserve into play
    - holder_id: crew member holding the token (weak reference, no FK);
      None means the token sits in the ship pool
    """

    __tablename__ = "ep_tokens"
    __table_args__ = (
        UniqueConstraint("ship_id", "slot", name="uq_ep_tokens_ship_slot"),
    )

    ship_id: Mapped[str] = mapped_column(
        ForeignKey("ships.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    slot: Mapped[int] = mapped_column(Integer, nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    holder_id: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        index=True,
    )

    ship: Mapped["Ship"] = relationship("Ship", back_populates="ep_tokens")
