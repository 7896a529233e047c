"""
Unit tests for the domain exception hierarchy and entity dispatch.
"""

import pytest

from shipcore.modules.shared.entities import describe_entity
from shipcore.modules.shared.exceptions import (
    ErrorSeverity,
    InvalidCrewRollPermissionsError,
    InvalidEPPermissionsError,
    ShipcoreDomainException,
    ValidationError,
)
from tests.factories import make_crew, make_module, make_ship


@pytest.mark.unit
class TestDomainExceptions:
    def test_permission_errors_carry_localization_keys(self):
        ep_error = InvalidEPPermissionsError("ship-1", "u1")
        roll_error = InvalidCrewRollPermissionsError("crew-1", "u1")

        assert ep_error.error_code == "InvalidEPPermissions"
        assert roll_error.error_code == "InvalidCrewRollPermissions"
        assert ep_error.severity is ErrorSeverity.INFO
        assert isinstance(ep_error, ShipcoreDomainException)

    def test_to_dict(self):
        error = ValidationError("total_count", "must be positive")

        data = error.to_dict()

        assert data["error_type"] == "ValidationError"
        assert data["error_code"] == "VALIDATION_ERROR"
        assert data["details"] == {"field": "total_count"}
        assert data["severity"] == "warning"
        assert data["is_retryable"] is False

    def test_str_includes_code_and_details(self):
        error = InvalidEPPermissionsError("ship-1", "u1")

        assert str(error).startswith("[InvalidEPPermissions]")

@pytest.mark.unit
class TestDescribeEntity:
    def test_ship(self):
        assert describe_entity(make_ship())["kind"] == "ship"

    def test_character(self):
        info = describe_entity(make_crew("c1", "captain", kind="npc"))

        assert info["kind"] == "npc"
        assert info["crew_position"] == "captain"

    def test_item(self):
        info = describe_entity(make_module())

        assert info["kind"] == "item"
        assert info["item_kind"] == "weapon"

    def test_unknown_variant_rejected(self):
        with pytest.raises(TypeError):
            describe_entity(object())
