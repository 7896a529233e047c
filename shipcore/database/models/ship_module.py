"""
ShipModule: an item installed on a ship (weapons, armor, engines, ...).
Pure schema only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shipcore.core.database.base import Base, IdMixin, TimestampMixin

from .enums import ModuleCategory

if TYPE_CHECKING:
    from .ship import Ship


class ShipModule(Base, IdMixin, TimestampMixin):
    """
    Ship module row.

    Weapon-only columns (bonus, damage, range, crit, special, automatic) are
    ignored for other categories.
    """

    __tablename__ = "ship_modules"

    ship_id: Mapped[str] = mapped_column(
        ForeignKey("ships.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    category: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ModuleCategory.UTILITY.value,
    )

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    damage: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    damage_text: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    range: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    crit_value: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    crit_text: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    special: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    automatic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    ship: Mapped["Ship"] = relationship("Ship", back_populates="modules")
