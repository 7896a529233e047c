"""
Unit tests for ShipService.

Covers the ship lifecycle workflow (creation primes tokens, deletion
decouples crew), hull points, module management, weapon fire and the sheet
overview.
"""

import pytest

from shipcore.database.models import ModuleCategory, PermissionLevel, Ship
from shipcore.modules.crew.service import CrewService
from shipcore.modules.energy.service import EnergyService
from shipcore.modules.ship.service import ShipService
from tests.factories import make_crew, make_module, make_ship, make_tokens


@pytest.fixture
def energy_service(config_manager, test_logger, ship_repository, crew_repository, fake_db, retry_policy):
    return EnergyService(
        config_manager,
        test_logger,
        ship_repository=ship_repository,
        crew_repository=crew_repository,
        database=fake_db,
        retry_policy=retry_policy,
    )


@pytest.fixture
def crew_service(
    config_manager, test_logger, crew_repository, ship_repository, roll_service, fake_db, retry_policy
):
    return CrewService(
        config_manager,
        test_logger,
        roll_service=roll_service,
        crew_repository=crew_repository,
        ship_repository=ship_repository,
        database=fake_db,
        retry_policy=retry_policy,
    )


@pytest.fixture
def ship_service(
    config_manager,
    test_logger,
    energy_service,
    crew_service,
    roll_service,
    ship_repository,
    module_repository,
    fake_db,
    retry_policy,
):
    return ShipService(
        config_manager,
        test_logger,
        energy_service=energy_service,
        crew_service=crew_service,
        roll_service=roll_service,
        ship_repository=ship_repository,
        module_repository=module_repository,
        database=fake_db,
        retry_policy=retry_policy,
    )


@pytest.mark.unit
class TestShipLifecycle:
    async def test_create_ship_primes_tokens(self, ship_service, ship_repository, fake_db):
        # Act
        ship = await ship_service.create_ship(
            "Sidereal Wanderer", owner_id="owner-user", max_energy_points=6, hull_points_max=8
        )

        # Assert
        assert isinstance(ship, Ship)
        assert ship.id
        assert len(ship.ep_tokens) == 10
        assert sum(t.active for t in ship.ep_tokens) == 6
        assert all(t.holder_id is None for t in ship.ep_tokens)
        assert ship.hull_points_value == 8
        assert ship.owner_levels == {"owner-user": int(PermissionLevel.OWNER)}
        ship_repository.add.assert_called_once_with(fake_db.session, ship)
        ship_repository.flush.assert_awaited_once()
        assert fake_db.commits == 1

    @pytest.mark.parametrize(
        "hull_max, hull_value, expected_max, expected_value",
        [(8, 20, 8, 8), (8, -3, 8, 0), (-5, None, 0, 0), (8, 3, 8, 3)],
    )
    async def test_create_ship_clamps_hull(
        self, ship_service, hull_max, hull_value, expected_max, expected_value
    ):
        # Act
        ship = await ship_service.create_ship(
            "Dented", hull_points_max=hull_max, hull_points_value=hull_value
        )

        # Assert
        assert ship.hull_points_max == expected_max
        assert ship.hull_points_value == expected_value

    async def test_create_ship_without_capacity_starts_empty(self, ship_service):
        ship = await ship_service.create_ship("Hulk")

        assert len(ship.ep_tokens) == 10
        assert not any(t.active for t in ship.ep_tokens)

    async def test_token_count_follows_config(self, ship_service, config_manager):
        config_manager.set_override("energy.max_tokens_per_ship", 12)

        ship = await ship_service.create_ship("Big One", max_energy_points=12)

        assert len(ship.ep_tokens) == 12
        assert sum(t.active for t in ship.ep_tokens) == 12

    async def test_delete_ship_decouples_crew(
        self, ship_service, ship_repository, crew_repository, fake_db
    ):
        # Arrange
        ship = make_ship()
        ship_repository.get_for_update.return_value = ship
        crew_repository.clear_ship_reference.return_value = 3

        # Act
        cleared = await ship_service.delete_ship("ship-1")

        # Assert
        assert cleared == 3
        ship_repository.delete.assert_awaited_once_with(fake_db.session, ship)
        crew_repository.clear_ship_reference.assert_awaited_once_with(fake_db.session, "ship-1")
        assert fake_db.commits == 2

    async def test_delete_missing_ship_still_clears_stale_crew(
        self, ship_service, ship_repository, crew_repository
    ):
        ship_repository.get_for_update.return_value = None
        crew_repository.clear_ship_reference.return_value = 1

        assert await ship_service.delete_ship("ship-1") == 1
        ship_repository.delete.assert_not_awaited()

    async def test_delete_is_idempotent(self, ship_service, ship_repository, crew_repository):
        ship_repository.get_for_update.side_effect = [make_ship(), None]
        crew_repository.clear_ship_reference.side_effect = [2, 0]

        assert await ship_service.delete_ship("ship-1") == 2
        assert await ship_service.delete_ship("ship-1") == 0


@pytest.mark.unit
class TestHullAndModules:
    @pytest.mark.parametrize("requested, expected", [(3, 3), (-4, 0), (99, 8)])
    async def test_hull_points_clamped(self, ship_service, ship_repository, requested, expected):
        ship = make_ship(hull_points_value=5, hull_points_max=8)
        ship_repository.get_for_update.return_value = ship

        assert await ship_service.set_hull_points("ship-1", requested) == expected
        assert ship.hull_points_value == expected

    async def test_toggle_module(self, ship_service, module_repository):
        module = make_module(enabled=False)
        module_repository.get_for_ship.return_value = module

        assert await ship_service.toggle_module("ship-1", "mod-1") is True
        assert module.enabled is True

    async def test_toggle_missing_module_is_noop(self, ship_service, module_repository):
        module_repository.get_for_ship.return_value = None

        assert await ship_service.toggle_module("ship-1", "gone") is None

    async def test_quantity_never_negative(self, ship_service, module_repository):
        module = make_module(quantity=2)
        module_repository.get_for_ship.return_value = module

        assert await ship_service.set_module_quantity("ship-1", "mod-1", -3) == 0
        assert module.quantity == 0


@pytest.mark.unit
class TestFireWeapon:
    async def test_gunner_fires(
        self,
        ship_service,
        module_repository,
        crew_repository,
        roll_service,
        gunner_character,
        gunner_player,
    ):
        # Arrange
        module_repository.get_for_ship.return_value = make_module(special=["Blast"])
        crew_repository.find_gunner.return_value = gunner_character

        # Act
        request = await ship_service.fire_weapon("ship-1", "mod-1", gunner_player, modifier=2)

        # Assert
        assert request.is_ship_weapon is True
        assert request.attribute_key == "agility"
        assert request.skill_key == "rangedcombat"
        assert request.features == "Blast"
        assert request.modifier == 2
        roll_service.submit.assert_awaited_once_with(request)

    async def test_no_gunner_no_roll(
        self, ship_service, module_repository, crew_repository, roll_service, gm
    ):
        module_repository.get_for_ship.return_value = make_module()
        crew_repository.find_gunner.return_value = None

        assert await ship_service.fire_weapon("ship-1", "mod-1", gm) is None
        roll_service.submit.assert_not_awaited()

    async def test_disabled_weapon_no_roll(
        self, ship_service, module_repository, crew_repository, roll_service, gunner_character, gm
    ):
        module_repository.get_for_ship.return_value = make_module(enabled=False)
        crew_repository.find_gunner.return_value = gunner_character

        assert await ship_service.fire_weapon("ship-1", "mod-1", gm) is None
        roll_service.submit.assert_not_awaited()

    async def test_unauthorized_user_no_roll(
        self, ship_service, module_repository, crew_repository, roll_service, gunner_character, stranger
    ):
        module_repository.get_for_ship.return_value = make_module()
        crew_repository.find_gunner.return_value = gunner_character

        assert await ship_service.fire_weapon("ship-1", "mod-1", stranger) is None
        roll_service.submit.assert_not_awaited()


@pytest.mark.unit
class TestOverview:
    async def test_overview_view_model(
        self, ship_service, ship_repository, crew_repository, gunner_character, gunner_player
    ):
        # Arrange
        ship = make_ship(
            max_energy_points=6,
            hull_points_value=5,
            hull_points_max=8,
            tokens=make_tokens(10, active=5, holders=["gunner-1", "gunner-1", None, "eng-1"]),
            modules=[
                make_module("mod-1", name="Mass Driver"),
                make_module("mod-2", name="Graviton Projector", category=ModuleCategory.ENGINE.value),
            ],
        )
        ship_repository.get_with_details.return_value = ship
        crew_repository.find_crew_by_ship.return_value = [
            gunner_character,
            make_crew("eng-1", "engineer", name="Rahim"),
        ]

        # Act
        overview = await ship_service.build_overview("ship-1", gunner_player)

        # Assert
        assert overview.current_ship_ep == 2
        assert overview.max_energy_points == 6
        assert len(overview.energy_blocks) == 6
        assert sum(b.filled for b in overview.energy_blocks) == 2
        assert sum(b.filled for b in overview.hull_blocks) == 5
        assert overview.crew_has_tokens is True

        assert [c.crew_id for c in overview.crew] == ["eng-1", "gunner-1"]
        assert [c.current_ep for c in overview.crew] == [1, 2]
        assert overview.crew[1].position_name == "Gunner"

        modules = {m.module_id: m for m in overview.modules}
        assert modules["mod-1"].can_fire is True
        assert modules["mod-2"].can_fire is False

    async def test_decoupled_holder_not_reported(
        self, ship_service, ship_repository, crew_repository, gm
    ):
        # Arrange: tokens still held by a crew member who left the ship
        ship = make_ship(
            max_energy_points=6,
            tokens=make_tokens(10, active=6, holders=["left-1", "left-1"]),
        )
        ship_repository.get_with_details.return_value = ship
        crew_repository.find_crew_by_ship.return_value = [
            make_crew("left-1", "pilot", ship_id="ship-2"),
        ]

        # Act
        overview = await ship_service.build_overview("ship-1", gm)

        # Assert
        assert overview.crew == []
        assert overview.current_ship_ep == 4
        assert overview.crew_has_tokens is False

    async def test_missing_ship(self, ship_service, ship_repository, gm):
        ship_repository.get_with_details.return_value = None

        assert await ship_service.build_overview("gone", gm) is None
