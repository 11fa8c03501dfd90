"""Bot DNA: the persona/tone/length/voice document driving every model call."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PERSONA = (
    "You are a friendly and helpful campus guide bot. "
    "Your job is to help students find locations on campus."
)
DEFAULT_TONE = "casual and helpful"
DEFAULT_MAX_LENGTH = 100


class BotConfig(BaseModel):
    """A fully populated Bot DNA document.

    Stored with camelCase keys (``maxLength``, ``selectedVoiceId``); either
    spelling is accepted on input. Unknown keys are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    persona: str = DEFAULT_PERSONA
    tone: str = DEFAULT_TONE
    max_length: int = Field(default=DEFAULT_MAX_LENGTH, gt=0, alias="maxLength")
    selected_voice_id: str | None = Field(default=None, alias="selectedVoiceId")

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> BotConfig:
        """Merge a remote document over the defaults.

        Fields missing from *data* (or explicitly null, except the voice)
        are back-filled with their defaults.
        """
        merged = DEFAULT_CONFIG.to_document()
        for key, value in data.items():
            if value is None and key != "selectedVoiceId":
                continue
            merged[key] = value
        return cls.model_validate(merged)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


DEFAULT_CONFIG = BotConfig()
