"""Async access to the libsql document database.

The ``libsql`` driver is synchronous, so every call is pushed onto a worker
thread with ``asyncio.to_thread()``.  The connection target follows settings:

- **Production**: ``TURSO_DATABASE_URL`` + ``TURSO_AUTH_TOKEN`` → hosted Turso
- **Dev/test**: no Turso env vars → local SQLite file at ``database_path``
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import libsql

from campus_bot.config import settings

if TYPE_CHECKING:
    from pathlib import Path


class Connection:
    """Async facade over one synchronous libsql connection.

    Usable as an async context manager; the connection is closed on exit.
    """

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    async def __aenter__(self) -> Connection:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def fetchone(self, sql: str, params: tuple = ()) -> tuple | None:
        cursor = await asyncio.to_thread(self._conn.execute, sql, params)
        return await asyncio.to_thread(cursor.fetchone)

    async def execute(self, sql: str, params: tuple = ()) -> int:
        """Run a statement and return the affected row count."""
        cursor = await asyncio.to_thread(self._conn.execute, sql, params)
        return cursor.rowcount

    async def commit(self) -> None:
        await asyncio.to_thread(self._conn.commit)

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)


def _open_local(path: str) -> Any:
    """Open a local libsql file with WAL mode and a busy timeout."""
    conn = libsql.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


async def connect(local_path_override: Path | None = None) -> Connection:
    """Open a connection to the document database.

    *local_path_override* (test isolation) wins over everything else; then
    ``TURSO_DATABASE_URL`` selects the hosted database; otherwise the local
    ``database_path`` file is used.
    """
    if local_path_override is not None:
        local_path_override.parent.mkdir(parents=True, exist_ok=True)
        conn = await asyncio.to_thread(_open_local, str(local_path_override))
        return Connection(conn)

    if settings.turso_database_url:
        conn = await asyncio.to_thread(
            libsql.connect,
            database=settings.turso_database_url,
            auth_token=settings.turso_auth_token,
        )
        return Connection(conn)

    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    conn = await asyncio.to_thread(_open_local, str(settings.database_path))
    return Connection(conn)
