"""
Domain exceptions for Shipcore.

Purpose
-------
Define the structured, domain-specific exception hierarchy for ship and crew
logic. Services raise these for authorization failures and missing configuration;
presentation adapters translate them into user-facing notifications.

Design Notes
------------
- All domain exceptions inherit from `ShipcoreDomainException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict-like)
  - `severity`: `ErrorSeverity` value for logging decisions
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier; for player-facing errors this is
    the localization key the notification layer displays
- Range violations are never raised: allocation requests are clamped and
  invalid token counts are no-ops.
- Stale references are never raised: lookups that miss are no-ops.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, not concerning
    INFO = "info"  # Normal operation (e.g., permission denials)
    WARNING = "warning"  # Concerning but handled
    ERROR = "error"  # Unexpected errors requiring attention
    CRITICAL = "critical"  # System-level failures


class ShipcoreDomainException(Exception):
    """
    Base exception for all Shipcore domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise ShipcoreDomainException("Ship locked", {"ship_id": "abc"})
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ValidationError(ShipcoreDomainException):
    """
    Raised when a service is misconfigured (a required tunable is missing).

    Never raised for player input: out-of-range allocation requests are
    clamped and invalid token counts are ignored.

    Args:
        field: Name of the invalid field
        message: Description of the problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(
            message,
            details={"field": field},
            error_code="VALIDATION_ERROR",
        )


class InvalidEPPermissionsError(ShipcoreDomainException):
    """
    Raised when the acting user may not change a ship's energy allocation.

    The error code is the localization key shown to the user.

    Args:
        ship_id: Ship whose allocation was targeted
        user_id: Acting user
        scope: "ship" for the ship pool, "crew" for a crew allocation
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, ship_id: str, user_id: str, scope: str = "ship") -> None:
        self.ship_id = ship_id
        self.user_id = user_id
        self.scope = scope
        super().__init__(
            "User is not allowed to change energy points for this ship",
            details={"ship_id": ship_id, "user_id": user_id, "scope": scope},
            error_code="InvalidEPPermissions",
        )


class InvalidCrewRollPermissionsError(ShipcoreDomainException):
    """
    Raised when the acting user may not roll on behalf of a crew member.

    Args:
        crew_id: Crew member the roll was requested for
        user_id: Acting user
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, crew_id: str, user_id: str) -> None:
        self.crew_id = crew_id
        self.user_id = user_id
        super().__init__(
            "User is not allowed to roll for this crew member",
            details={"crew_id": crew_id, "user_id": user_id},
            error_code="InvalidCrewRollPermissions",
        )

