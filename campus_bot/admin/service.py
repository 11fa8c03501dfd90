"""Operator actions behind the admin gate, independent of transport."""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING, Any

from campus_bot.errors import ValidationError
from campus_bot.events.models import Event, parse_date_key
from campus_bot.speech import english_voices

if TYPE_CHECKING:
    from campus_bot.dna.sync import ConfigSync
    from campus_bot.events.store import EventStore
    from campus_bot.optimizer import OptimizationResult, OptimizerPipeline
    from campus_bot.speech import Speaker, Voice

logger = logging.getLogger(__name__)

MISSING_EVENT_FIELDS = "Please enter an event name, venue, and time."
WRONG_PASSWORD = "Incorrect password. Please try again."


class AdminService:
    """Event editing, voice selection and Optimizer feedback for the operator.

    Input is validated before any store or model call. Store failures
    surface as ``StoreWriteError`` for the caller to report.
    """

    def __init__(
        self,
        config_sync: ConfigSync,
        events: EventStore,
        optimizer: OptimizerPipeline,
        speaker: Speaker,
        password: str,
    ) -> None:
        self._config_sync = config_sync
        self._events = events
        self._optimizer = optimizer
        self._speaker = speaker
        self._password = password

    def verify_secret(self, secret: str) -> bool:
        """Check the shared operator secret. An empty configured secret locks everything."""
        if not self._password:
            return False
        return hmac.compare_digest(secret.encode(), self._password.encode())

    # -- Bot DNA ---------------------------------------------------------------

    def current_config(self) -> dict[str, Any]:
        return self._config_sync.current.to_document()

    def available_voices(self) -> list[Voice]:
        return english_voices(self._speaker.voices())

    async def set_voice(self, voice_id: str | None) -> None:
        """Select a voice; empty or None means the system default.

        A voice that is not available at speaking time also falls back to
        the system default.
        """
        voice_id = (voice_id or "").strip() or None
        await self._config_sync.update({"selectedVoiceId": voice_id})
        logger.info("Voice preference set to %s", voice_id or "system default")

    async def submit_feedback(self, feedback: str) -> OptimizationResult:
        return await self._optimizer.optimize(feedback, self._config_sync.current)

    # -- Events ----------------------------------------------------------------

    async def list_events(self, date: str) -> list[Event]:
        return await self._events.list_events(date)

    async def add_event(self, date: str, name: str, venue: str, time: str) -> list[Event]:
        key = parse_date_key(date)
        if not all(isinstance(v, str) and v.strip() for v in (name, venue, time)):
            raise ValidationError(MISSING_EVENT_FIELDS)
        event = Event(name=name.strip(), venue=venue.strip(), time=time.strip())
        return await self._events.add(key, event)

    async def delete_event(self, date: str, index: int) -> list[Event]:
        return await self._events.delete(parse_date_key(date), index)
