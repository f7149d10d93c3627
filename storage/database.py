"""
Database access module for Usage Stats.

One backend per process, chosen from configuration the first time it is
needed: PostgreSQL when a ``postgres://`` connection string is configured,
otherwise a local SQLite file. ALL database access should go through this
module so call sites never care which backend is active.

Statements are always written with ``?`` placeholders. Each backend
translates them to the syntax its driver expects.

Usage:
    from storage.database import db_query, db_query_one, db_execute

    # Simple query
    rows = await db_query("SELECT * FROM users WHERE email = ?", (email,))

    # Single row, None when nothing matches
    user = await db_query_one("SELECT id FROM users WHERE email = ?", (email,))

    # Insert/Update
    result = await db_execute(
        "INSERT INTO users (email, user_name) VALUES (?, ?)", (email, name)
    )
    print(result.generated_id, result.affected_count)
"""

import asyncio
import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

import psycopg2
import psycopg2.extensions
import psycopg2.extras
import psycopg2.pool

from config import AppConfig, get_config
from storage.schema import ALREADY_EXISTS_MARKERS, POSTGRES_SCHEMA, SQLITE_SCHEMA

logger = logging.getLogger(__name__)

Row = dict[str, Any]

DEFAULT_INIT_TIMEOUT = 10.0


class DatabaseError(Exception):
    """A backend error, carrying the driver's original message."""

    def __init__(self, message: str, backend: str = "unknown") -> None:
        super().__init__(message)
        self.message = message
        self.backend = backend


class ConnectionFailure(DatabaseError):
    """The backend could not be reached."""


class QueryFailure(DatabaseError):
    """A statement was rejected by the backend."""


@dataclass
class ExecuteResult:
    """Outcome of a mutating statement.

    generated_id is only meaningful for inserts into auto-increment tables.
    """
    generated_id: int = 0
    affected_count: int = 0


# =============================================================================
# Placeholder translation
# =============================================================================

PARAMSTYLES = ("qmark", "format", "numeric")


def translate_placeholders(sql: str, style: str) -> str:
    """Rewrite ``?`` placeholders for a driver's paramstyle.

    - qmark:   unchanged (sqlite3)
    - format:  ``%s``, with literal ``%`` doubled (psycopg2)
    - numeric: ``$1, $2, ...``

    ``?`` characters inside single- or double-quoted literals are kept.

    Example:
        >>> translate_placeholders("SELECT * FROM t WHERE a = ? AND b = '?'", "numeric")
        "SELECT * FROM t WHERE a = $1 AND b = '?'"
    """
    if style not in PARAMSTYLES:
        raise ValueError(f"Unknown paramstyle: {style}")
    if style == "qmark":
        return sql

    out: list[str] = []
    quote: Optional[str] = None
    position = 0

    for char in sql:
        if char == "%" and style == "format":
            out.append("%%")
            continue
        if quote is not None:
            # A doubled quote closes and immediately reopens the literal
            if char == quote:
                quote = None
            out.append(char)
        elif char in ("'", '"'):
            quote = char
            out.append(char)
        elif char == "?":
            position += 1
            out.append("%s" if style == "format" else f"${position}")
        else:
            out.append(char)

    return "".join(out)


# =============================================================================
# Backends
# =============================================================================

class DatabaseBackend:
    """Common interface for the storage backends.

    Subclasses implement ``_run`` for their driver. Methods here are
    blocking; the async module functions below run them in an executor.
    """

    name = "base"
    paramstyle = "qmark"
    schema: Sequence[str] = ()

    def __init__(self, init_timeout: float = DEFAULT_INIT_TIMEOUT) -> None:
        self.init_timeout = init_timeout
        self.schema_ready = False

    def _run(self, sql: str, params: Sequence[Any], fetch: str) -> Any:
        raise NotImplementedError

    def query_rows(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        return self._run(sql, params, "all")

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        return self._run(sql, params, "one")

    def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
        return self._run(sql, params, "none")

    def create_schema(self) -> None:
        """Create tables and indexes if missing. Safe to call repeatedly."""
        if self.schema_ready:
            return
        for statement in self.schema:
            try:
                self.execute(statement)
            except QueryFailure as e:
                # Concurrent cold starts can race on CREATE ... IF NOT EXISTS
                if any(marker in e.message for marker in ALREADY_EXISTS_MARKERS):
                    logger.debug(f"Schema object already exists: {e.message}")
                    continue
                raise
        self.schema_ready = True

    def describe(self) -> dict[str, str]:
        return {"backend": self.name}

    def close(self) -> None:
        pass


class SQLiteBackend(DatabaseBackend):
    """Embedded single-file backend.

    Each call opens a fresh connection. SQLite connections are cheap, and
    SQLite's own locking serializes writers.
    """

    name = "sqlite"
    paramstyle = "qmark"
    schema = SQLITE_SCHEMA

    def __init__(
        self,
        path: str | Path,
        init_timeout: float = DEFAULT_INIT_TIMEOUT,
    ) -> None:
        super().__init__(init_timeout)
        self.path = Path(path).expanduser()

    def _connect(self) -> sqlite3.Connection:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path), timeout=30.0)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")  # Better concurrent reads
            conn.execute("PRAGMA foreign_keys=ON")   # Enforce FK constraints
        except (OSError, sqlite3.Error) as e:
            raise ConnectionFailure(str(e), backend=self.name) from e
        return conn

    def _run(self, sql: str, params: Sequence[Any], fetch: str) -> Any:
        conn = self._connect()
        try:
            cursor = conn.execute(sql, tuple(params))
            if fetch == "all":
                return [dict(row) for row in cursor.fetchall()]
            if fetch == "one":
                row = cursor.fetchone()
                return dict(row) if row is not None else None
            conn.commit()
            return ExecuteResult(
                generated_id=cursor.lastrowid or 0,
                affected_count=max(cursor.rowcount, 0),
            )
        except (sqlite3.Error, OverflowError) as e:
            # OverflowError: an int parameter wider than SQLite's 64-bit INTEGER
            conn.rollback()
            raise QueryFailure(str(e), backend=self.name) from e
        finally:
            conn.close()

    def describe(self) -> dict[str, str]:
        return {"backend": self.name, "location": str(self.path)}


class PostgresBackend(DatabaseBackend):
    """Networked backend over a bounded psycopg2 connection pool.

    The pool is created on first use. A semaphore sized to the pool makes
    callers wait for a free connection instead of failing with
    "connection pool exhausted".
    """

    name = "postgres"
    paramstyle = "format"
    schema = POSTGRES_SCHEMA

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 5,
        init_timeout: float = DEFAULT_INIT_TIMEOUT,
    ) -> None:
        super().__init__(init_timeout)
        self.dsn = dsn
        self.min_size = min(min_size, max_size)
        self.max_size = max_size
        self._pool: Optional[psycopg2.pool.ThreadedConnectionPool] = None
        self._pool_lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(max_size)

    def _get_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        if self._pool is None:
            with self._pool_lock:
                if self._pool is None:
                    try:
                        self._pool = psycopg2.pool.ThreadedConnectionPool(
                            self.min_size, self.max_size, dsn=self.dsn
                        )
                    except psycopg2.Error as e:
                        raise ConnectionFailure(str(e).strip(), backend=self.name) from e
                    logger.info(
                        f"PostgreSQL pool created ({self.min_size}-{self.max_size} connections)"
                    )
        return self._pool

    def _prepare(self, sql: str, params: Sequence[Any]) -> tuple[str, Optional[tuple]]:
        # psycopg2 only interpolates (and unescapes %%) when arguments are given
        if not params:
            return sql, None
        return translate_placeholders(sql, self.paramstyle), tuple(params)

    def _run(self, sql: str, params: Sequence[Any], fetch: str) -> Any:
        pool = self._get_pool()
        statement, args = self._prepare(sql, params)

        self._slots.acquire()
        try:
            try:
                conn = pool.getconn()
            except psycopg2.Error as e:
                raise ConnectionFailure(str(e).strip(), backend=self.name) from e

            try:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                    cursor.execute(statement, args)
                    if fetch == "all":
                        result = [dict(row) for row in cursor.fetchall()]
                    elif fetch == "one":
                        row = cursor.fetchone()
                        result = dict(row) if row is not None else None
                    else:
                        result = ExecuteResult(affected_count=max(cursor.rowcount, 0))
                        # INSERT ... RETURNING id
                        if cursor.description is not None:
                            returned = cursor.fetchone()
                            if returned:
                                value = next(iter(returned.values()))
                                if isinstance(value, int):
                                    result.generated_id = value
                conn.commit()
                return result
            except psycopg2.Error as e:
                broken = bool(conn.closed) or isinstance(e, psycopg2.OperationalError)
                if not conn.closed:
                    conn.rollback()
                message = (getattr(e, "pgerror", None) or str(e)).strip()
                if broken:
                    raise ConnectionFailure(message, backend=self.name) from e
                raise QueryFailure(message, backend=self.name) from e
            finally:
                pool.putconn(conn, close=bool(conn.closed))
        finally:
            self._slots.release()

    def describe(self) -> dict[str, str]:
        parsed = psycopg2.extensions.parse_dsn(self.dsn)
        location = f"{parsed.get('host', 'localhost')}/{parsed.get('dbname', '')}"
        return {"backend": self.name, "location": location}

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None


# =============================================================================
# Process-wide backend
# =============================================================================

_backend: Optional[DatabaseBackend] = None
_backend_lock = threading.Lock()


def create_backend(config: AppConfig) -> DatabaseBackend:
    """Build the backend described by configuration."""
    timeout = config.database.init_timeout_seconds
    if config.is_postgres():
        backend = PostgresBackend(
            config.database_url(),
            min_size=config.database.pool_min_size,
            max_size=config.database.pool_max_size,
            init_timeout=timeout,
        )
        logger.info(f"Using PostgreSQL backend at {backend.describe()['location']}")
        return backend

    if config.database_url():
        logger.warning("Connection string is not a PostgreSQL URL; using SQLite")
    backend = SQLiteBackend(config.sqlite_path(), init_timeout=timeout)
    logger.info(f"Using SQLite backend at {backend.path}")
    return backend


def get_backend() -> DatabaseBackend:
    """Return the process-wide backend, creating it on first use."""
    global _backend
    if _backend is None:
        with _backend_lock:
            if _backend is None:
                _backend = create_backend(get_config())
    return _backend


def set_backend(backend: Optional[DatabaseBackend]) -> None:
    """Replace the process-wide backend (tests and tooling)."""
    global _backend
    with _backend_lock:
        _backend = backend


def close_database() -> None:
    """Close the active backend and forget it.

    Normal deployments never call this; test harnesses do between runs.
    """
    global _backend
    with _backend_lock:
        if _backend is not None:
            _backend.close()
            _backend = None


# =============================================================================
# Async API
# =============================================================================

async def db_query(sql: str, params: Sequence[Any] = ()) -> list[Row]:
    """Execute a SELECT query and return all rows as dicts.

    Example:
        rows = await db_query(
            "SELECT * FROM daily_stats WHERE date >= ?",
            ("2024-01-01",)
        )
        for row in rows:
            print(row["user_id"], row["total_emails"])
    """
    backend = get_backend()
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, backend.query_rows, sql, params)


async def db_query_one(sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
    """Execute a SELECT query and return the first row, or None."""
    backend = get_backend()
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, backend.query_one, sql, params)


async def db_execute(sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
    """Execute an INSERT/UPDATE/DELETE. Auto-commits on success."""
    backend = get_backend()
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, backend.execute, sql, params)


async def init_database(timeout: Optional[float] = None) -> bool:
    """Initialize the schema if needed.

    Bounded by ``timeout`` seconds (the backend's configured value by
    default). A timeout is logged and treated as done so a slow backend
    cannot hang the first request.

    Returns:
        True if the schema is known to be in place, False on timeout.
    """
    backend = get_backend()
    if backend.schema_ready:
        return True

    limit = backend.init_timeout if timeout is None else timeout
    loop = asyncio.get_event_loop()
    try:
        await asyncio.wait_for(
            loop.run_in_executor(None, backend.create_schema), timeout=limit
        )
    except asyncio.TimeoutError:
        logger.warning(
            f"Database initialization did not finish within {limit}s - continuing anyway"
        )
        return False

    logger.info(f"Database schema ready ({backend.name})")
    return True
