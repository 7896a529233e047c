"""
Unit tests for EnergyService.

Repositories are mocks, transactions come from FakeDatabase. Verifies
authorization, persistence boundaries and the retry policy wiring.
"""

import logging

import pytest
from sqlalchemy.exc import OperationalError

from shipcore.modules.energy.service import EnergyService
from shipcore.modules.shared.exceptions import InvalidEPPermissionsError
from tests.factories import make_crew, make_ship, make_tokens


@pytest.fixture
def energy_service(
    config_manager, test_logger, ship_repository, crew_repository, fake_db, retry_policy
):
    return EnergyService(
        config_manager,
        test_logger,
        ship_repository=ship_repository,
        crew_repository=crew_repository,
        database=fake_db,
        retry_policy=retry_policy,
    )


@pytest.fixture
def ship():
    return make_ship(max_energy_points=6, tokens=make_tokens(10, active=6))


@pytest.mark.unit
class TestSetActiveEPTokens:
    async def test_owner_sets_pool(self, energy_service, ship_repository, ship, ship_owner, fake_db):
        # Arrange
        ship_repository.get_with_tokens.return_value = ship

        # Act
        change = await energy_service.set_active_ep_tokens("ship-1", 3, ship_owner)

        # Assert
        assert change.applied == 3
        assert sum(t.active for t in ship.ep_tokens) == 3
        assert fake_db.commits == 1
        ship_repository.get_with_tokens.assert_awaited_once_with(fake_db.session, "ship-1")

    async def test_reports_crew_reset(
        self, energy_service, ship_repository, crew_repository, gm
    ):
        ship = make_ship(tokens=make_tokens(10, active=4, holders=["eng-1", "gun-1"]))
        ship_repository.get_with_tokens.return_value = ship
        crew_repository.find_crew_by_ship.return_value = [
            make_crew("eng-1", "engineer"),
            make_crew("gun-1", "gunner"),
        ]

        change = await energy_service.set_active_ep_tokens("ship-1", 4, gm)

        assert change.crew_reset is True
        assert all(t.holder_id is None for t in ship.ep_tokens)

    async def test_decoupled_crew_holdings_reclaimed_silently(
        self, energy_service, ship_repository, crew_repository, gm
    ):
        # Arrange: "left-1" still holds tokens but is no longer on the crew
        ship = make_ship(tokens=make_tokens(10, active=6, holders=["left-1", "left-1"]))
        ship_repository.get_with_tokens.return_value = ship
        crew_repository.find_crew_by_ship.return_value = []

        # Act
        change = await energy_service.set_active_ep_tokens("ship-1", 6, gm)

        # Assert
        assert change.crew_reset is False
        assert all(t.holder_id is None for t in ship.ep_tokens)

    async def test_denied_without_mutation_or_logging(
        self, energy_service, ship_repository, ship, stranger, caplog
    ):
        # Arrange
        caplog.set_level(logging.DEBUG)
        ship_repository.get_with_tokens.return_value = ship
        before = [(t.active, t.holder_id) for t in ship.ep_tokens]

        # Act
        with pytest.raises(InvalidEPPermissionsError) as exc_info:
            await energy_service.set_active_ep_tokens("ship-1", 0, stranger)

        # Assert
        assert exc_info.value.error_code == "InvalidEPPermissions"
        assert [(t.active, t.holder_id) for t in ship.ep_tokens] == before
        assert not [r for r in caplog.records if r.levelno >= logging.INFO]

    async def test_missing_ship_is_noop(self, energy_service, ship_repository, gm):
        ship_repository.get_with_tokens.return_value = None

        assert await energy_service.set_active_ep_tokens("gone", 3, gm) is None

    async def test_transient_failure_retried_once(
        self, energy_service, ship_repository, ship, gm, fake_db
    ):
        ship_repository.get_with_tokens.side_effect = [
            OperationalError("SELECT", {}, Exception("connection reset")),
            ship,
        ]

        change = await energy_service.set_active_ep_tokens("ship-1", 2, gm)

        assert change.applied == 2
        assert fake_db.rollbacks == 1
        assert fake_db.commits == 1

    async def test_persistent_failure_surfaces(self, energy_service, ship_repository, gm):
        ship_repository.get_with_tokens.side_effect = OperationalError(
            "SELECT", {}, Exception("database down")
        )

        with pytest.raises(OperationalError):
            await energy_service.set_active_ep_tokens("ship-1", 2, gm)

        assert ship_repository.get_with_tokens.await_count == 2


@pytest.mark.unit
class TestSetCrewEPCount:
    async def test_engineer_moves_tokens(
        self, energy_service, ship_repository, crew_repository, ship, engineer_player
    ):
        # Arrange
        ship_repository.get_with_tokens.return_value = ship
        crew_repository.find_crew_by_ship.return_value = [
            make_crew("eng-1", "engineer", owner="engineer-user"),
            make_crew("gun-1", "gunner"),
        ]

        # Act
        change = await energy_service.set_crew_ep_count("ship-1", "gun-1", 2, engineer_player)

        # Assert
        assert change.applied == 2
        assert sum(1 for t in ship.ep_tokens if t.holder_id == "gun-1") == 2

    async def test_stranger_denied(
        self, energy_service, ship_repository, crew_repository, ship, stranger
    ):
        ship_repository.get_with_tokens.return_value = ship
        crew_repository.find_crew_by_ship.return_value = [make_crew("gun-1", "gunner")]

        with pytest.raises(InvalidEPPermissionsError) as exc_info:
            await energy_service.set_crew_ep_count("ship-1", "gun-1", 2, stranger)

        assert exc_info.value.scope == "crew"
        assert all(t.holder_id is None for t in ship.ep_tokens)

    async def test_unlinked_crew_member_is_noop(
        self, energy_service, ship_repository, crew_repository, ship, gm
    ):
        ship_repository.get_with_tokens.return_value = ship
        crew_repository.find_crew_by_ship.return_value = []

        assert await energy_service.set_crew_ep_count("ship-1", "ghost", 2, gm) is None
        assert all(t.holder_id is None for t in ship.ep_tokens)

    async def test_over_request_clamped(
        self, energy_service, ship_repository, crew_repository, gm
    ):
        ship = make_ship(max_energy_points=6, tokens=make_tokens(10, active=3, holders=["eng-1"]))
        ship_repository.get_with_tokens.return_value = ship
        crew_repository.find_crew_by_ship.return_value = [make_crew("eng-1", "engineer")]

        change = await energy_service.set_crew_ep_count("ship-1", "eng-1", 10, gm)

        assert change.applied == 3
        assert change.clamped is True


@pytest.mark.unit
class TestTokenCreation:
    async def test_create_blank_tokens(self, energy_service, ship_repository, fake_db):
        ship = make_ship(tokens=[])
        ship_repository.get_with_tokens.return_value = ship

        created = await energy_service.create_blank_tokens("ship-1", 6)

        assert created == 6
        assert len(ship.ep_tokens) == 6
        ship_repository.flush.assert_awaited_once_with(fake_db.session)

    async def test_non_positive_count_is_a_no_op(
        self, energy_service, ship_repository, fake_db
    ):
        created = await energy_service.create_blank_tokens("ship-1", 0)

        assert created == 0

        ship_repository.get_with_tokens.assert_not_awaited()
        assert fake_db.commits == 0

    def test_prime_new_ship_fills_bar(self, energy_service):
        ship = make_ship(max_energy_points=4, tokens=[])

        change = energy_service.prime_new_ship(ship)

        assert len(ship.ep_tokens) == 10
        assert change.applied == 4
        assert sum(t.active for t in ship.ep_tokens) == 4

    def test_prime_new_ship_without_capacity(self, energy_service):
        ship = make_ship(max_energy_points=0, tokens=[])

        assert energy_service.prime_new_ship(ship) is None
        assert not any(t.active for t in ship.ep_tokens)


@pytest.mark.unit
class TestEnergySummary:
    async def test_summary(self, energy_service, ship_repository, crew_repository, fake_db):
        ship = make_ship(tokens=make_tokens(10, active=4, holders=["eng-1", None, "eng-1"]))
        ship_repository.get_with_tokens.return_value = ship
        crew_repository.find_crew_by_ship.return_value = [make_crew("eng-1", "engineer")]

        summary = await energy_service.get_energy_summary("ship-1")

        assert summary.ship_ep == 2
        assert summary.crew == {"eng-1": 2}
        assert summary.crew_has_tokens is True
        assert fake_db.reads == 1
        assert fake_db.commits == 0

    async def test_summary_skips_holders_no_longer_on_crew(
        self, energy_service, ship_repository, crew_repository
    ):
        ship = make_ship(tokens=make_tokens(10, active=6, holders=["left-1", "left-1"]))
        ship_repository.get_with_tokens.return_value = ship
        crew_repository.find_crew_by_ship.return_value = []

        summary = await energy_service.get_energy_summary("ship-1")

        assert summary.ship_ep == 4
        assert summary.crew == {}
        assert summary.crew_has_tokens is False
