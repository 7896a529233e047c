"""Crew roster, crew rolls and crew decoupling."""

from .repository import CrewRepository
from .service import CrewService

__all__ = ["CrewRepository", "CrewService"]
