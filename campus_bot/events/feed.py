"""EventFeed: the latest event list for one watched date."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from campus_bot.events.models import events_from_document, parse_date_key, today_key
from campus_bot.events.store import EVENTS_COLLECTION
from campus_bot.store.mirror import Mirror

if TYPE_CHECKING:
    from campus_bot.events.models import Event
    from campus_bot.store.documents import DocumentStore, Snapshot

logger = logging.getLogger(__name__)


class EventFeed(Mirror[list]):
    """Mirror of one date's events.

    The bot uses ``EventFeed.for_today()``; the date is fixed when the feed
    is created and is not re-derived if the session crosses midnight.
    """

    def __init__(self, store: DocumentStore, date: str) -> None:
        super().__init__(store, EVENTS_COLLECTION, parse_date_key(date), [])

    @classmethod
    def for_today(cls, store: DocumentStore) -> EventFeed:
        return cls(store, today_key())

    @property
    def date(self) -> str:
        return self._key

    @property
    def current(self) -> list[Event]:
        return list(self._current)

    async def _apply(self, snapshot: Snapshot) -> None:
        events = events_from_document(snapshot.data)
        self._publish(events)
        if snapshot.exists:
            logger.info("Events for %s loaded: %d", self._key, len(events))
        else:
            logger.info("No events scheduled for %s", self._key)
