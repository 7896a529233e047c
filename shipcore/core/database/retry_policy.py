"""
Database Retry Policy - Infrastructure Resilience

Purpose
-------
Retry policy for transient entity-store failures with exponential backoff and
jitter. Executes an async operation (which opens its own transaction) again
when a retriable error is raised.

Retry Classification
--------------------
- Retriable: OperationalError, DBAPIError (connection/transient issues)
- Non-retriable: All other exceptions (domain errors, logic errors)

Backoff Strategy
----------------
min(base * 2^(attempt-1), max) + random(0, jitter)

Configuration
-------------
All values sourced from Config:
- DATABASE_RETRY_MAX_ATTEMPTS (default: 2, i.e. a single retry)
- DATABASE_RETRY_INITIAL_BACKOFF_MS (default: 50)
- DATABASE_RETRY_MAX_BACKOFF_MS (default: 500)
- DATABASE_RETRY_JITTER_MS (default: 25)

Usage
-----
Retry the operation that creates the transaction, never work inside one:

>>> async def operation():
>>>     async with DatabaseService.get_transaction() as session:
>>>         ...
>>>
>>> await DatabaseRetryPolicy.from_config().execute(
>>>     operation, operation_name="energy.set_active_ep_tokens"
>>> )
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from shipcore.core.config.config import Config
from shipcore.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class DatabaseRetryConfig:
    """
    Configuration for database retry behavior.

    Attributes
    ----------
    max_attempts : int
        Maximum number of attempts (including initial attempt).
    initial_backoff_ms : int
        Initial backoff duration in milliseconds.
    max_backoff_ms : int
        Maximum backoff duration in milliseconds.
    jitter_ms : int
        Maximum random jitter to add to backoff in milliseconds.
    retriable_exceptions : Tuple[Type[BaseException], ...]
        Exception types considered retriable.
    """

    max_attempts: int
    initial_backoff_ms: int
    max_backoff_ms: int
    jitter_ms: int
    retriable_exceptions: Tuple[Type[BaseException], ...] = (
        OperationalError,
        DBAPIError,
    )

    @classmethod
    def from_config(cls) -> DatabaseRetryConfig:
        return cls(
            max_attempts=Config.DATABASE_RETRY_MAX_ATTEMPTS,
            initial_backoff_ms=Config.DATABASE_RETRY_INITIAL_BACKOFF_MS,
            max_backoff_ms=Config.DATABASE_RETRY_MAX_BACKOFF_MS,
            jitter_ms=Config.DATABASE_RETRY_JITTER_MS,
        )


class DatabaseRetryPolicy:
    """
    Execute async database operations with retry semantics.

    Public API
    ----------
    - __init__(config) -> Create policy with configuration
    - from_config() -> Create policy from Config
    - execute(operation, operation_name, context) -> Execute with retries
    """

    def __init__(self, config: DatabaseRetryConfig) -> None:
        self._config = config

    @classmethod
    def from_config(cls) -> DatabaseRetryPolicy:
        return cls(DatabaseRetryConfig.from_config())

    @property
    def max_attempts(self) -> int:
        return self._config.max_attempts

    def _is_retriable(self, exc: BaseException) -> bool:
        return isinstance(exc, self._config.retriable_exceptions)

    def _compute_backoff_ms(self, attempt: int) -> int:
        """
        Compute backoff duration for given attempt (1-indexed) with jitter.
        """
        exponent = max(attempt - 1, 0)
        base = self._config.initial_backoff_ms * (2**exponent)
        capped = min(base, self._config.max_backoff_ms)

        jitter = (
            random.randint(0, self._config.jitter_ms)
            if self._config.jitter_ms > 0
            else 0
        )

        return capped + jitter

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        operation_name: str,
        context: Optional[dict[str, Any]] = None,
    ) -> T:
        """
        Execute async operation with retry logic for transient failures.

        Parameters
        ----------
        operation : Callable[[], Awaitable[T]]
            Zero-argument async callable performing database work.
        operation_name : str
            Stable identifier for logging (e.g., "energy.set_crew_ep_count").
        context : Optional[dict[str, Any]]
            Additional structured context for logs.

        Raises
        ------
        Exception
            The last exception when retries are exhausted, or any
            non-retriable exception immediately.
        """
        ctx_extra = context.copy() if context else {}
        ctx_extra["operation"] = operation_name

        attempt = 0

        while True:
            attempt += 1

            try:
                return await operation()

            except Exception as exc:
                error_type = type(exc).__name__
                retriable = self._is_retriable(exc)
                will_retry = retriable and attempt < self._config.max_attempts

                if not retriable:
                    raise

                logger.warning(
                    "Database operation failed",
                    extra={
                        **ctx_extra,
                        "attempt": attempt,
                        "error_type": error_type,
                        "will_retry": will_retry,
                    },
                )

                if not will_retry:
                    logger.error(
                        "Database operation retries exhausted",
                        extra={
                            **ctx_extra,
                            "attempt": attempt,
                            "error_type": error_type,
                            "max_attempts": self._config.max_attempts,
                        },
                    )
                    raise

                backoff_ms = self._compute_backoff_ms(attempt)
                logger.debug(
                    "Backing off before retry",
                    extra={**ctx_extra, "attempt": attempt, "backoff_ms": backoff_ms},
                )
                await asyncio.sleep(backoff_ms / 1000.0)
