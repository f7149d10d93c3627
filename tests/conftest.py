"""Shared fixtures: a throwaway SQLite backend per test."""

import tempfile
from pathlib import Path

import pytest_asyncio

from storage.database import SQLiteBackend, close_database, init_database, set_backend


@pytest_asyncio.fixture
async def sqlite_backend():
    """Install a temporary SQLite backend with the schema created."""
    with tempfile.TemporaryDirectory() as tmpdir:
        backend = SQLiteBackend(Path(tmpdir) / "test.db")
        set_backend(backend)
        await init_database()
        yield backend
        close_database()
