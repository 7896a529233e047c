"""
Pytest Configuration and Fixtures for Shipcore Tests
====================================================

Purpose
-------
Shared fixtures for the Shipcore test suite: fake transaction handling,
repository mocks, tunables, users and entity factories.

Responsibilities
----------------
- Force the testing environment before Shipcore reads its settings
- Provide a fake DatabaseService whose transactions record commit/rollback
- Provide repository mocks specced against the real repositories
- Shared users and a ready-made gunner (factories live in tests/factories.py)

Architecture Notes
------------------
- Unit tests use mocks and detached ORM instances (no database)
- Integration tests use testcontainers (see tests/integration/conftest.py)
- ConfigManager is reset around every test so overrides never leak
"""

from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from contextlib import asynccontextmanager  # noqa: E402

import pytest  # noqa: E402

from shipcore.core.config.manager import ConfigManager  # noqa: E402
from shipcore.core.database.retry_policy import (  # noqa: E402
    DatabaseRetryConfig,
    DatabaseRetryPolicy,
)
from shipcore.core.logging.logger import get_logger, shutdown_logging  # noqa: E402
from shipcore.database.models import Character  # noqa: E402
from shipcore.modules.crew.repository import CrewRepository  # noqa: E402
from shipcore.modules.permissions.gate import UserContext  # noqa: E402
from shipcore.modules.ship.repository import (  # noqa: E402
    ShipModuleRepository,
    ShipRepository,
)
from tests.factories import make_crew  # noqa: E402


def pytest_sessionfinish(session, exitstatus):
    """Flush the log queue listener before the interpreter exits."""
    shutdown_logging()


# ============================================================================
# FAKE INFRASTRUCTURE
# ============================================================================


class FakeDatabase:
    """
    Stand-in for DatabaseService.

    Yields the same mock session for every block and counts outcomes so
    tests can assert a denied request never reached commit with changes.
    """

    def __init__(self, session) -> None:
        self.session = session
        self.commits = 0
        self.rollbacks = 0
        self.reads = 0

    @asynccontextmanager
    async def get_transaction(self):
        try:
            yield self.session
        except Exception:
            self.rollbacks += 1
            raise
        else:
            self.commits += 1

    @asynccontextmanager
    async def get_session(self):
        self.reads += 1
        yield self.session


@pytest.fixture
def db_session_mock(mocker):
    session = mocker.MagicMock()
    session.execute = mocker.AsyncMock()
    session.flush = mocker.AsyncMock()
    session.delete = mocker.AsyncMock()
    return session


@pytest.fixture
def fake_db(db_session_mock) -> FakeDatabase:
    return FakeDatabase(db_session_mock)


@pytest.fixture
def retry_policy() -> DatabaseRetryPolicy:
    """Two attempts, no backoff."""
    return DatabaseRetryPolicy(
        DatabaseRetryConfig(
            max_attempts=2,
            initial_backoff_ms=0,
            max_backoff_ms=0,
            jitter_ms=0,
        )
    )


@pytest.fixture
def config_manager():
    """Real ConfigManager loaded from the packaged YAML, reset afterwards."""
    ConfigManager.reset()
    ConfigManager.initialize()
    yield ConfigManager
    ConfigManager.reset()


@pytest.fixture
def test_logger():
    return get_logger("shipcore.tests")


# ============================================================================
# REPOSITORY MOCKS
# ============================================================================


@pytest.fixture
def ship_repository(mocker):
    return mocker.MagicMock(spec=ShipRepository)


@pytest.fixture
def crew_repository(mocker):
    return mocker.MagicMock(spec=CrewRepository)


@pytest.fixture
def module_repository(mocker):
    return mocker.MagicMock(spec=ShipModuleRepository)


@pytest.fixture
def roll_service(mocker):
    service = mocker.MagicMock()
    service.submit = mocker.AsyncMock()
    return service


# ============================================================================
# USERS
# ============================================================================


@pytest.fixture
def gm() -> UserContext:
    return UserContext(user_id="gm-user", is_gm=True)


@pytest.fixture
def ship_owner() -> UserContext:
    return UserContext(user_id="owner-user")


@pytest.fixture
def engineer_player() -> UserContext:
    return UserContext(user_id="engineer-user")


@pytest.fixture
def gunner_player() -> UserContext:
    return UserContext(user_id="gunner-user")


@pytest.fixture
def stranger() -> UserContext:
    return UserContext(user_id="stranger-user")


@pytest.fixture
def gunner_character() -> Character:
    return make_crew(
        "gunner-1",
        "gunner",
        owner="gunner-user",
        name="Zafira",
        attributes={"agility": {"value": 4}},
        skills={
            "rangedcombat": {"value": 3, "attribute": "agility", "category": "general"}
        },
    )
