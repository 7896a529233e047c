from shipcore.core.database.base import Base, IdMixin, TimestampMixin, new_entity_id
from shipcore.core.database.retry_policy import DatabaseRetryConfig, DatabaseRetryPolicy
from shipcore.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    "Base",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
    "DatabaseRetryConfig",
    "DatabaseRetryPolicy",
    "DatabaseService",
    "IdMixin",
    "TimestampMixin",
    "new_entity_id",
]
