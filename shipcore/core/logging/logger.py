"""
Shipcore logging
================

Every record emitted while an EP allocation, crew roll or ship lifecycle
call is running carries who asked (``user_id``), which ship and crew member
it touched (``ship_id``, ``crew_id``) and a short ``correlation_id`` that ties
the records of one sheet click together.

Layout
------
- ``LogContext`` binds those fields in a ContextVar for the duration of a
  ``with``/``async with`` block, so concurrent requests never see each
  other's fields.
- ``ContextFilter`` copies the bound fields onto each record at emit time,
  on the emitting task. Fields passed explicitly via ``extra=`` win.
- Records cross to a background ``QueueListener`` through a bounded queue;
  when the queue is full the record is dropped and counted rather than
  blocking the event loop.
- Console output is JSON (``JSONFormatter``) in production or when
  ``LOG_JSON`` is set, plain text otherwise.

Call ``setup_logging()`` once at startup (it also runs on import) and
``shutdown_logging()`` before exit to flush the queue.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Dict, Optional, Tuple

from shipcore.core.config.config import Config

CONTEXT_FIELDS: Tuple[str, ...] = (
    "user_id",
    "ship_id",
    "crew_id",
    "correlation_id",
    "component",
    "operation",
)
UNSET = "N/A"

QUEUE_MAX_SIZE = 10_000
PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [ship=%(ship_id)s] %(message)s"

# Attributes every LogRecord has; anything else on a record came from extra=
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

_bound_context: ContextVar[Dict[str, Any]] = ContextVar("shipcore_log_context", default={})


# ============================================================================
# Context
# ============================================================================


class LogContext:
    """
    Bind allocation context to every record logged inside the block.

    >>> async with LogContext(user_id="u1", ship_id="s1", operation="ep.set_active"):
    ...     await energy_service.set_active_ep_tokens("s1", 4, user)
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        ship_id: Optional[str] = None,
        crew_id: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.context: Dict[str, Any] = {
            "user_id": _as_field(user_id),
            "ship_id": _as_field(ship_id),
            "crew_id": _as_field(crew_id),
            "component": component,
            "operation": operation,
            "correlation_id": correlation_id or uuid.uuid4().hex[:8],
            **extra,
        }
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _bound_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _bound_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def _as_field(value: Optional[Any]) -> str:
    return UNSET if value is None else str(value)


def set_log_context(**fields: Any) -> None:
    """Merge ``fields`` into the current context; None values are ignored."""
    current = dict(_bound_context.get())
    for key, value in fields.items():
        if value is None:
            continue
        current[key] = str(value) if key.endswith("_id") else value
    _bound_context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_bound_context.get())


def clear_log_context() -> None:
    _bound_context.set({})


# ============================================================================
# Record enrichment and rendering
# ============================================================================


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        bound = _bound_context.get()
        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                continue
            value = bound.get(field)
            if field == "component" and not value:
                value = record.name.split(".", 1)[0]
            setattr(record, field, value or UNSET)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; unset context fields are omitted."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value not in (None, UNSET):
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
            and key not in CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Queue plumbing
# ============================================================================


class _BoundedQueueHandler(QueueHandler):
    def __init__(self, log_queue: "queue.Queue[logging.LogRecord]") -> None:
        super().__init__(log_queue)
        self.enqueued = 0
        self.dropped = 0

    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self.dropped += 1
            sys.stderr.write("shipcore: log queue full, record dropped\n")
        else:
            self.enqueued += 1


@dataclass(frozen=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int


_handler: Optional[_BoundedQueueHandler] = None
_listener: Optional[QueueListener] = None


def _log_level() -> int:
    level = logging.getLevelName(str(Config.LOG_LEVEL).upper())
    return level if isinstance(level, int) else logging.INFO


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    use_json = Config.is_production() if Config.LOG_JSON is None else Config.LOG_JSON
    handler.setFormatter(JSONFormatter() if use_json else logging.Formatter(PLAIN_FORMAT))
    return handler


def setup_logging() -> None:
    """Install the queue handler on the root logger; repeated calls are no-ops."""
    global _handler, _listener

    if _handler is not None:
        return

    level = _log_level()
    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(QUEUE_MAX_SIZE)

    _listener = QueueListener(log_queue, _console_handler(level), respect_handler_level=True)
    _listener.start()

    _handler = _BoundedQueueHandler(log_queue)
    _handler.setLevel(level)
    _handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging initialized",
        extra={
            "environment": Config.ENVIRONMENT,
            "log_level": logging.getLevelName(level),
            "queue_max_size": QUEUE_MAX_SIZE,
        },
    )


def shutdown_logging() -> None:
    """Drain the queue and detach the handler."""
    global _handler, _listener

    if _listener is not None:
        _listener.stop()
        _listener = None
    if _handler is not None:
        logging.getLogger().removeHandler(_handler)
        _handler.close()
        _handler = None


def get_logging_health() -> LoggingHealth:
    if _handler is None:
        return LoggingHealth(False, 0, 0, 0, 0)
    return LoggingHealth(
        initialized=True,
        queue_size=_handler.queue.qsize(),
        queue_max_size=_handler.queue.maxsize,
        records_enqueued=_handler.enqueued,
        records_dropped=_handler.dropped,
    )


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


setup_logging()
