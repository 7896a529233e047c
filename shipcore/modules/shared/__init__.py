"""
Shared building blocks for Shipcore domain modules.

Exports the service and repository base classes and the domain exception
hierarchy.
"""

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    ErrorSeverity,
    InvalidCrewRollPermissionsError,
    InvalidEPPermissionsError,
    ShipcoreDomainException,
    ValidationError,
)

__all__ = [
    "BaseRepository",
    "BaseService",
    "ErrorSeverity",
    "InvalidCrewRollPermissionsError",
    "InvalidEPPermissionsError",
    "ShipcoreDomainException",
    "ValidationError",
]
