"""Usage Stats - Storage Module.

The storage layer is organized as follows:
- database.py: backend-agnostic gateway (SQLite file or PostgreSQL)
- schema.py: table definitions per dialect
- models.py: dataclass definitions
- repositories/: SQL for each relation

Example:
    >>> from storage import init_database, UserRepository
    >>>
    >>> await init_database()
    >>> user = await UserRepository().ensure_user("kyle@example.com")
"""

from .database import (
    ConnectionFailure,
    DatabaseBackend,
    DatabaseError,
    ExecuteResult,
    PostgresBackend,
    QueryFailure,
    SQLiteBackend,
    close_database,
    db_execute,
    db_query,
    db_query_one,
    get_backend,
    init_database,
    set_backend,
    translate_placeholders,
)
from .models import (
    NOT_RECENTLY_USED,
    AuthAccount,
    DailyStat,
    DailyUsageRecord,
    TrackedUser,
)
from .repositories import (
    AuthRepository,
    BaseRepository,
    DailyStatsRepository,
    UserRepository,
)

__all__ = [
    # Gateway
    "DatabaseBackend",
    "SQLiteBackend",
    "PostgresBackend",
    "ExecuteResult",
    "get_backend",
    "set_backend",
    "close_database",
    "init_database",
    "db_query",
    "db_query_one",
    "db_execute",
    "translate_placeholders",
    # Errors
    "DatabaseError",
    "ConnectionFailure",
    "QueryFailure",
    # Models
    "NOT_RECENTLY_USED",
    "DailyUsageRecord",
    "TrackedUser",
    "DailyStat",
    "AuthAccount",
    # Repositories
    "BaseRepository",
    "AuthRepository",
    "DailyStatsRepository",
    "UserRepository",
]
