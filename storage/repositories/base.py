"""Base repository class for database operations.

Repositories hold the SQL for one relation and go through the
process-wide gateway in ``storage.database``, so they work unchanged on
either backend.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, Sequence, TypeVar

from storage.database import ExecuteResult, Row, db_execute, db_query, db_query_one

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Base repository with common database operations.

    Subclasses implement entity-specific queries using ``?`` placeholders.
    """

    async def _query(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        return await db_query(sql, params)

    async def _query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        return await db_query_one(sql, params)

    async def _execute(self, sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
        return await db_execute(sql, params)

    async def _count(self, table: str) -> int:
        row = await db_query_one(f"SELECT COUNT(*) AS n FROM {table}")
        return int(row["n"]) if row else 0
