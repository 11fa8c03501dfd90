"""Text-to-speech boundary.

Device speech APIs live outside this package; the conversation controller
only needs a list of voices and a way to speak one utterance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Voice:
    id: str
    name: str
    lang: str


class Speaker(Protocol):
    def voices(self) -> list[Voice]: ...

    async def speak(self, text: str, voice: Voice | None) -> None: ...


def english_voices(voices: list[Voice]) -> list[Voice]:
    """Voices offered to the operator: English only."""
    return [v for v in voices if "en" in v.lang.lower()]


def resolve_voice(voices: list[Voice], voice_id: str | None) -> Voice | None:
    """The configured voice if it is available, else None (system default)."""
    if not voice_id:
        return None
    for voice in english_voices(voices):
        if voice.id == voice_id:
            return voice
    logger.info("Voice %s not available, using system default", voice_id)
    return None


class LoggingSpeaker:
    """Speaker that records what would be said. Used when no device is attached."""

    def __init__(self, voices: list[Voice] | None = None) -> None:
        self._voices = list(voices or [])
        self.spoken: list[tuple[str, Voice | None]] = []

    def voices(self) -> list[Voice]:
        return list(self._voices)

    async def speak(self, text: str, voice: Voice | None) -> None:
        self.spoken.append((text, voice))
        logger.info("Speaking (%s): %s", voice.name if voice else "default", text[:80])
