"""
Engine and transaction handling for the ship store.

Every EP allocation is one read-modify-write inside ``get_transaction()``:
the ship row is locked, its token rows are rewritten, and the block commits
on exit or rolls back on any exception. Services never call
``session.commit()`` themselves.

Retries live in ``DatabaseRetryPolicy``; schema migrations are out of scope
(``create_schema``/``drop_schema`` serve tests and local setups).

>>> async with DatabaseService.get_transaction() as session:
...     ship = await session.get(Ship, ship_id, with_for_update=True)
...     ship.hull_points_value = 3
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from shipcore.core.config.config import Config
from shipcore.core.database.base import Base
from shipcore.core.logging.logger import get_logger

logger = get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    """No usable database URL, or the engine could not be built."""


class DatabaseNotInitializedError(RuntimeError):
    """A session was requested before ``DatabaseService.initialize()``."""


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": Config.DATABASE_ECHO}
    if Config.is_testing():
        # no connection reuse under test
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=Config.DATABASE_POOL_SIZE,
            max_overflow=Config.DATABASE_MAX_OVERFLOW,
            pool_recycle=Config.DATABASE_POOL_RECYCLE,
            pool_pre_ping=True,
        )
    return options


class DatabaseService:
    """Class-level holder of the single engine and its session factory."""

    _engine: Optional[AsyncEngine] = None
    _sessions: Optional[async_sessionmaker[AsyncSession]] = None
    _lock: Optional[asyncio.Lock] = None

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """Build the engine from ``url`` or ``DATABASE_URL``; repeated calls are no-ops."""
        if cls._lock is None:
            cls._lock = asyncio.Lock()

        async with cls._lock:
            if cls._engine is not None:
                return

            database_url = url or Config.DATABASE_URL
            if not database_url:
                raise DatabaseInitializationError("DATABASE_URL is not configured")

            try:
                engine = create_async_engine(database_url, **_engine_options())
            except Exception as exc:
                logger.error(
                    "Could not build database engine",
                    extra={"error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(str(exc)) from exc

            cls._engine = engine
            cls._sessions = async_sessionmaker(engine, expire_on_commit=False)
            logger.info(
                "Ship store connected",
                extra={"url_scheme": database_url.split("://", 1)[0]},
            )

    @classmethod
    async def shutdown(cls) -> None:
        if cls._engine is None:
            return
        await cls._engine.dispose()
        cls._engine = None
        cls._sessions = None
        logger.info("Ship store disconnected")

    @classmethod
    def _ready_engine(cls) -> AsyncEngine:
        if cls._engine is None:
            raise DatabaseNotInitializedError(
                "Call DatabaseService.initialize() before using the ship store"
            )
        return cls._engine

    @classmethod
    async def create_schema(cls) -> None:
        """Create ship, token, module and character tables."""
        import shipcore.database.models  # noqa: F401  (registers the tables)

        async with cls._ready_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @classmethod
    async def drop_schema(cls) -> None:
        async with cls._ready_engine().begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    @classmethod
    async def health_check(cls) -> bool:
        """``SELECT 1`` against the store; False when unreachable or not initialized."""
        if cls._engine is None:
            return False
        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            logger.warning(
                "Ship store unreachable",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        return True

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """Session for reads; nothing is committed."""
        cls._ready_engine()
        assert cls._sessions is not None
        async with cls._sessions() as session:
            yield session

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on normal exit and rolls back on any exception."""
        cls._ready_engine()
        assert cls._sessions is not None
        started = time.perf_counter()
        async with cls._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception as exc:
                await session.rollback()
                logger.warning(
                    "Transaction rolled back",
                    extra={
                        "error_type": type(exc).__name__,
                        "duration_ms": round((time.perf_counter() - started) * 1000.0, 1),
                    },
                )
                raise
