"""Conversation controller: runs one chat turn end to end."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from campus_bot.bot.transcript import Message, Transcript
from campus_bot.llm.request import ErrorResult, TextResult
from campus_bot.llm.router import route
from campus_bot.speech import resolve_voice

if TYPE_CHECKING:
    from campus_bot.dna.models import BotConfig
    from campus_bot.events.models import Event
    from campus_bot.llm.client import ModelClient
    from campus_bot.speech import Speaker

logger = logging.getLogger(__name__)

GREETING = (
    "Hello! I am your campus assistant. "
    "Ask me where to find any location or what's happening today!"
)
GENERIC_FAILURE = "Sorry, I had an error processing that. Please try again."


class _Source(Protocol):
    @property
    def current(self) -> Any: ...


class ConversationController:
    """Owns the transcript and enforces one turn at a time.

    ``config`` and ``events`` are live mirrors; their latest values are read
    at the start of every turn and passed explicitly to the router.
    """

    def __init__(
        self,
        client: ModelClient,
        config: _Source,
        events: _Source,
        knowledge: list[Any],
        speaker: Speaker,
        transcript: Transcript | None = None,
    ) -> None:
        self._client = client
        self._config = config
        self._events = events
        self._knowledge = knowledge
        self._speaker = speaker
        self.transcript = transcript or Transcript()
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    def greet(self) -> Message | None:
        """Post the opening greeting once, if there is data to talk about."""
        if len(self.transcript) or not self._knowledge:
            return None
        return self.transcript.add("assistant", GREETING)

    def notify(self, text: str) -> Message:
        """Post a system notice (e.g. a load failure) as an assistant message."""
        return self.transcript.add("assistant", text)

    async def process_turn(self, utterance: str) -> Message | None:
        """Answer one utterance.

        Returns the resolved assistant message, or None if the utterance was
        blank or another turn is still pending.
        """
        if not utterance or not utterance.strip():
            return None
        if self._pending:
            logger.info("Turn rejected: another turn is pending")
            return None

        self._pending = True
        try:
            self.transcript.add("user", utterance)
            placeholder = self.transcript.add_placeholder()
            text = await self._answer(utterance)
            reply = self.transcript.resolve_placeholder(placeholder.id, text)
            await self._speak(text)
            return reply
        finally:
            self._pending = False

    async def _answer(self, utterance: str) -> str:
        config: BotConfig = self._config.current
        events: list[Event] = self._events.current
        try:
            request = route(utterance, config, self._knowledge, events)
            result = await self._client.complete_request(request)
        except Exception:
            logger.exception("Error generating response")
            return GENERIC_FAILURE

        if isinstance(result, TextResult):
            return result.text
        if isinstance(result, ErrorResult):
            logger.warning("Model call failed: %s", result.error)
            return result.message
        logger.error("Unexpected structured result for a chat turn")
        return GENERIC_FAILURE

    async def _speak(self, text: str) -> None:
        config: BotConfig = self._config.current
        try:
            voice = resolve_voice(self._speaker.voices(), config.selected_voice_id)
            await self._speaker.speak(text, voice)
        except Exception:
            logger.exception("Speech synthesis failed")
