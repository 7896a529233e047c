"""
Integration fixtures: a real PostgreSQL via testcontainers.

The container is started once per session. Every test gets a freshly created
schema on an initialized DatabaseService, dropped again afterwards.
Tests are skipped when no Docker daemon is reachable.
"""

from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from shipcore.core.database.service import DatabaseService
from shipcore.core.logging.logger import get_logger
from shipcore.modules.crew.service import CrewService
from shipcore.modules.energy.service import EnergyService
from shipcore.modules.ship.service import ShipService

logger = get_logger(__name__)


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
    try:
        container.start()
    except Exception as exc:
        pytest.skip(f"PostgreSQL testcontainer unavailable: {exc}")

    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest_asyncio.fixture
async def database(
    postgres_container: PostgresContainer,
) -> AsyncGenerator[type[DatabaseService], None]:
    await DatabaseService.initialize(postgres_container.get_connection_url())
    await DatabaseService.create_schema()

    yield DatabaseService

    await DatabaseService.drop_schema()
    await DatabaseService.shutdown()


@pytest.fixture
def energy_service(database, config_manager, test_logger) -> EnergyService:
    return EnergyService(config_manager, test_logger, database=database)


@pytest.fixture
def crew_service(database, config_manager, test_logger, roll_service) -> CrewService:
    return CrewService(
        config_manager, test_logger, roll_service=roll_service, database=database
    )


@pytest.fixture
def ship_service(
    database, config_manager, test_logger, energy_service, crew_service, roll_service
) -> ShipService:
    return ShipService(
        config_manager,
        test_logger,
        energy_service,
        crew_service,
        roll_service=roll_service,
        database=database,
    )
