"""Event data model and calendar-date keys."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, field_validator

from campus_bot.config import settings
from campus_bot.errors import ValidationError

logger = logging.getLogger(__name__)


class Event(BaseModel):
    """One scheduled campus event. Identity is its position in the day's list."""

    model_config = ConfigDict(frozen=True)

    name: str
    venue: str
    time: str

    @field_validator("name", "venue", "time")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


def events_from_document(data: dict[str, Any] | None) -> list[Event]:
    """Read the ``events`` field of a stored collection.

    Entries that no longer validate are skipped rather than failing the
    whole day.
    """
    if not data:
        return []
    events: list[Event] = []
    for raw in data.get("events") or []:
        try:
            events.append(Event.model_validate(raw))
        except ValueError:
            logger.warning("Skipping malformed event entry: %s", raw)
            continue
    return events


def events_to_document(events: list[Event]) -> dict[str, Any]:
    return {"events": [event.model_dump() for event in events]}


def parse_date_key(value: str) -> str:
    """Validate an ISO ``YYYY-MM-DD`` key and return it normalised."""
    try:
        parsed = date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc
    if len(value) != 10:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    return parsed.isoformat()


def today_key(tz_name: str | None = None) -> str:
    """Today's date key in the configured timezone."""
    tz = ZoneInfo(tz_name or settings.timezone)
    return datetime.now(tz).date().isoformat()
