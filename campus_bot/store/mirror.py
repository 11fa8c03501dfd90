"""Keep an in-memory copy of one document current from its subscription."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from campus_bot.store.documents import DocumentStore, Snapshot, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Mirror(ABC, Generic[T]):
    """Consumes a document subscription and publishes the latest value.

    Readers use ``current`` and never wait on the store. ``start()`` returns
    once the first snapshot has been applied; later snapshots are applied by
    a background task until ``stop()``.
    """

    def __init__(self, store: DocumentStore, collection: str, key: str, initial: T) -> None:
        self._store = store
        self._collection = collection
        self._key = key
        self._current = initial
        self._subscription: Subscription | None = None
        self._task: asyncio.Task | None = None

    @property
    def current(self) -> T:
        return self._current

    @property
    def key(self) -> str:
        return self._key

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _publish(self, value: T) -> None:
        self._current = value

    def _read_failed(self, exc: Exception) -> None:
        """Called after a failed store read; the loop retries after one poll interval."""

    @abstractmethod
    async def _apply(self, snapshot: Snapshot) -> None:
        """Turn a snapshot into the published value."""

    async def start(self) -> None:
        if self._subscription is not None:
            raise RuntimeError(f"{type(self).__name__} already started")
        self._subscription = self._store.watch(self._collection, self._key)
        await self._next()
        self._task = asyncio.create_task(self._consume())

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _next(self) -> bool:
        """Apply one snapshot. Returns False once the subscription has ended."""
        sub = self._subscription
        if sub is None:
            return False
        try:
            snapshot = await anext(sub)
        except StopAsyncIteration:
            return False
        except Exception as exc:
            logger.exception("Error reading %s/%s", self._collection, self._key)
            self._read_failed(exc)
            await asyncio.sleep(self._store.poll_interval)
            return True
        await self._apply(snapshot)
        return True

    async def _consume(self) -> None:
        while await self._next():
            pass
