"""EventStore: per-date event lists on top of the document store.

Every edit rewrites the whole list for the date (read, change, replace).
Two sessions editing the same date concurrently can overwrite each other's
changes: the last write wins and no conflict is detected.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from campus_bot.errors import ValidationError
from campus_bot.events.models import (
    Event,
    events_from_document,
    events_to_document,
    parse_date_key,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from campus_bot.store.documents import DocumentStore

logger = logging.getLogger(__name__)

EVENTS_COLLECTION = "campus_bot_events"


class EventStore:
    """CRUD for the ``campus_bot_events`` collection, keyed by ISO date."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def list_events(self, date: str) -> list[Event]:
        """Events for *date* in insertion order. No collection → empty list."""
        snapshot = await self._store.get(EVENTS_COLLECTION, parse_date_key(date))
        return events_from_document(snapshot.data)

    async def watch(self, date: str) -> AsyncIterator[list[Event]]:
        """Yield the event list for *date* now and after every change."""
        sub = self._store.watch(EVENTS_COLLECTION, parse_date_key(date))
        try:
            async for snapshot in sub:
                yield events_from_document(snapshot.data)
        finally:
            sub.close()

    async def replace(self, date: str, events: list[Event]) -> list[Event]:
        """Overwrite the whole list for *date*. Raises ``StoreWriteError``."""
        key = parse_date_key(date)
        await self._store.set(EVENTS_COLLECTION, key, events_to_document(events))
        logger.info("Stored %d event(s) for %s", len(events), key)
        return list(events)

    async def add(self, date: str, event: Event) -> list[Event]:
        """Append *event* to the list for *date*."""
        current = await self.list_events(date)
        return await self.replace(date, [*current, event])

    async def delete(self, date: str, index: int) -> list[Event]:
        """Remove the event at *index* from the list for *date*."""
        current = await self.list_events(date)
        if index < 0 or index >= len(current):
            raise ValidationError(f"No event at position {index} on {date}")
        return await self.replace(date, current[:index] + current[index + 1 :])
