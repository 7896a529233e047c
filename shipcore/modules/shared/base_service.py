"""
Base Service Foundation

Purpose
-------
Provides the foundational class for Shipcore domain services. Services
implement business logic, own transaction boundaries, and raise domain
exceptions.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- The database handle and retry policy every persisted operation uses

What this class does NOT do:
- Permission checks (see shipcore.modules.permissions)
- Cross-entity side effects; workflows call each other explicitly

Usage
-----
    class EnergyService(BaseService):
        def __init__(self, config_manager, logger, ship_repository, **kwargs):
            super().__init__(config_manager, logger, **kwargs)
            self._ships = ship_repository

        async def set_active_ep_tokens(self, ship_id, new_count, user, session=None):
            async def _do(tx_session):
                ship = await self._ships.get_with_tokens(tx_session, ship_id)
                ...
            return await self.in_transaction(
                "energy.set_active_ep_tokens", _do, session, ship_id=ship_id
            )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Type, TypeVar

from shipcore.core.database.retry_policy import DatabaseRetryPolicy
from shipcore.core.database.service import DatabaseService

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from shipcore.core.config.manager import ConfigManager

T = TypeVar("T")


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Game tunables (ConfigManager or compatible)
        logger: Structured logger instance
        database: Object exposing ``get_transaction()`` and ``get_session()``
            async context managers; defaults to DatabaseService
        retry_policy: Policy wrapping each persisted operation
    """

    def __init__(
        self,
        config_manager: Type[ConfigManager] | ConfigManager,
        logger: Logger,
        database: Any = DatabaseService,
        retry_policy: Optional[DatabaseRetryPolicy] = None,
    ) -> None:
        self._config = config_manager
        self.log = logger
        self.db = database
        self._retry = retry_policy or DatabaseRetryPolicy.from_config()

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve configuration value.

        Raises:
            ValidationError: If required=True and key is missing
        """
        from .exceptions import ValidationError

        value = self._config.get(key, default)
        if required and value is None:
            raise ValidationError(key, f"Required configuration key '{key}' is missing")
        return value

    async def run_persisted(
        self,
        operation_name: str,
        operation: Callable[[], Awaitable[T]],
        **context: Any,
    ) -> T:
        """Run one transactional operation under the retry policy."""
        return await self._retry.execute(
            operation,
            operation_name=operation_name,
            context=context,
        )

    async def in_transaction(
        self,
        operation_name: str,
        work: Callable[[AsyncSession], Awaitable[T]],
        session: Optional[AsyncSession] = None,
        **context: Any,
    ) -> T:
        """
        Run ``work`` inside a transaction.

        With a caller-supplied session the work joins the caller's
        transaction and the caller owns commit and retry. Otherwise a fresh
        transaction is opened under the retry policy.
        """
        if session is not None:
            return await work(session)

        async def _operation() -> T:
            async with self.db.get_transaction() as tx_session:
                return await work(tx_session)

        return await self.run_persisted(operation_name, _operation, **context)

    async def in_session(
        self,
        work: Callable[[AsyncSession], Awaitable[T]],
        session: Optional[AsyncSession] = None,
    ) -> T:
        """Run read-only ``work`` on the given session or a fresh one."""
        if session is not None:
            return await work(session)
        async with self.db.get_session() as read_session:
            return await work(read_session)

    def log_operation(self, operation: str, **context: Any) -> None:
        """
        Log a service operation with structured context.

        Args:
            operation: Name of the operation being performed
            **context: Additional context data
        """
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )
