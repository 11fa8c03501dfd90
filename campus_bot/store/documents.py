"""DocumentStore: JSON documents in libsql with change subscriptions.

Documents are addressed by ``(collection, key)``. Writes made through a
store wake that store's subscribers immediately; writes made by other
processes are picked up by polling every ``store_poll_interval`` seconds.

Writes through one store are serialised: no other write from the same
store lands between a merge-write's read and its update.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from campus_bot.config import settings
from campus_bot.db import Connection, connect
from campus_bot.errors import StoreWriteError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    key        TEXT NOT NULL,
    data       TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (collection, key)
)
"""

_UPSERT = """
INSERT INTO documents (collection, key, data, updated_at)
VALUES (?, ?, ?, ?)
ON CONFLICT (collection, key) DO UPDATE SET
    data = excluded.data,
    updated_at = excluded.updated_at
"""


@dataclass(frozen=True)
class Snapshot:
    """The state of one document at a point in time."""

    collection: str
    key: str
    data: dict[str, Any] | None

    @property
    def exists(self) -> bool:
        return self.data is not None


class Subscription:
    """Lazy, infinite stream of snapshots for one document.

    The first ``__anext__`` returns the current state; each later call waits
    until the document differs from the last snapshot returned. Once closed
    the subscription cannot be restarted.
    """

    def __init__(self, store: DocumentStore, collection: str, key: str) -> None:
        self._store = store
        self.collection = collection
        self.key = key
        self._changed = asyncio.Event()
        self._last: Snapshot | None = None
        self._closed = False

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Snapshot:
        while not self._closed:
            if self._last is not None:
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(
                        self._changed.wait(), timeout=self._store.poll_interval
                    )
                self._changed.clear()
                if self._closed:
                    break
            snapshot = await self._store.get(self.collection, self.key)
            if snapshot != self._last:
                self._last = snapshot
                return snapshot
        raise StopAsyncIteration

    @property
    def closed(self) -> bool:
        return self._closed

    def notify(self) -> None:
        self._changed.set()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._store._unregister(self)
        self._changed.set()


class DocumentStore:
    """Key/value store of JSON documents.

    Singleton accessed via ``DocumentStore.get()``.  Pass an explicit
    *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: DocumentStore | None = None

    def __init__(self, db_path: Path | None = None, poll_interval: float | None = None) -> None:
        self._db_path = db_path
        self.poll_interval = poll_interval or settings.store_poll_interval
        self._initialised = False
        self._subscriptions: set[Subscription] = set()
        # Held across connect, execute and commit of every write
        self._write_lock = asyncio.Lock()

    @classmethod
    def get(cls) -> DocumentStore:
        """Return the shared DocumentStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _ensure_table(self) -> None:
        if self._initialised:
            return
        async with self._write_lock:
            if self._initialised:
                return
            async with await self._open() as db:
                await db.execute(_CREATE_TABLE)
                await db.commit()
            self._initialised = True

    async def _open(self) -> Connection:
        return await connect(local_path_override=self._db_path)

    async def _connect(self) -> Connection:
        await self._ensure_table()
        return await self._open()

    def _notify(self, collection: str, key: str) -> None:
        for sub in list(self._subscriptions):
            if sub.collection == collection and sub.key == key:
                sub.notify()

    def _unregister(self, sub: Subscription) -> None:
        self._subscriptions.discard(sub)

    @staticmethod
    def _now() -> str:
        return datetime.now(UTC).isoformat()

    # -- Read ------------------------------------------------------------------

    async def get(self, collection: str, key: str) -> Snapshot:
        """Read a document. A missing document is a snapshot with no data."""
        async with await self._connect() as db:
            row = await db.fetchone(
                "SELECT data FROM documents WHERE collection = ? AND key = ?",
                (collection, key),
            )
        data = json.loads(row[0]) if row else None
        return Snapshot(collection=collection, key=key, data=data)

    def watch(self, collection: str, key: str) -> Subscription:
        """Subscribe to a document. Close the subscription when done."""
        sub = Subscription(self, collection, key)
        self._subscriptions.add(sub)
        return sub

    # -- Write -----------------------------------------------------------------

    async def set(
        self, collection: str, key: str, data: dict[str, Any], *, merge: bool = False
    ) -> dict[str, Any]:
        """Write a document and return what was stored.

        With ``merge=True`` only the top-level fields in *data* change;
        everything else keeps its stored value. Otherwise the document is
        replaced outright.
        """
        try:
            await self._ensure_table()
            async with self._write_lock, await self._open() as db:
                stored = dict(data)
                if merge:
                    row = await db.fetchone(
                        "SELECT data FROM documents WHERE collection = ? AND key = ?",
                        (collection, key),
                    )
                    if row:
                        stored = {**json.loads(row[0]), **data}
                await db.execute(
                    _UPSERT, (collection, key, json.dumps(stored), self._now())
                )
                await db.commit()
        except Exception as exc:
            logger.exception("Write failed: %s/%s", collection, key)
            raise StoreWriteError(f"Failed to write {collection}/{key}") from exc

        logger.info("Wrote %s/%s (merge=%s)", collection, key, merge)
        self._notify(collection, key)
        return stored

    async def create(self, collection: str, key: str, data: dict[str, Any]) -> bool:
        """Create a document only if it does not exist yet.

        Returns True if this call created it. The first writer wins; an
        existing document is never overwritten.
        """
        try:
            await self._ensure_table()
            async with self._write_lock, await self._open() as db:
                created = await db.execute(
                    """
                    INSERT INTO documents (collection, key, data, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT (collection, key) DO NOTHING
                    """,
                    (collection, key, json.dumps(data), self._now()),
                )
                await db.commit()
        except Exception as exc:
            logger.exception("Create failed: %s/%s", collection, key)
            raise StoreWriteError(f"Failed to create {collection}/{key}") from exc

        if created > 0:
            logger.info("Created %s/%s", collection, key)
            self._notify(collection, key)
        return created > 0
