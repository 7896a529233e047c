"""
Declarative base and shared column mixins for Shipcore ORM models.

Models are schema-only: they declare columns and relationships and carry no
business rules. Allocation and permission logic live in the modules layer.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, MetaData, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def new_entity_id() -> str:
    """Opaque 16-character entity id, the shape the tabletop host uses."""
    return uuid.uuid4().hex[:16]


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class IdMixin:
    """String primary key generated client-side."""

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        default=new_entity_id,
    )


class TimestampMixin:
    """Server-side created/updated timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
