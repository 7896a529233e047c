from shipcore.core.logging.logger import (
    LogContext,
    clear_log_context,
    get_log_context,
    get_logger,
    get_logging_health,
    set_log_context,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "LogContext",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "get_logging_health",
    "set_log_context",
    "setup_logging",
    "shutdown_logging",
]
