"""Value objects passed into and returned from the model client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from campus_bot.errors import ModelError


@dataclass(frozen=True)
class GenerationRequest:
    """One model invocation.

    Attributes:
        prompt: User-turn text. Must be non-empty.
        system_instruction: Optional system prompt.
        output_schema: Optional response schema. Switches the call to
            structured (JSON) mode.
        web_search: Enable the service's search tool. Never combined with
            ``output_schema``.
    """

    prompt: str
    system_instruction: str | None = None
    output_schema: dict[str, Any] | None = None
    web_search: bool = False

    def __post_init__(self) -> None:
        if not self.prompt or not self.prompt.strip():
            raise ValueError("prompt must be non-empty")
        if self.output_schema is not None and self.web_search:
            raise ValueError("output_schema and web_search are mutually exclusive")

    @property
    def structured(self) -> bool:
        return self.output_schema is not None


@dataclass(frozen=True)
class TextResult:
    text: str


@dataclass(frozen=True)
class StructuredResult:
    data: dict[str, Any]


@dataclass(frozen=True)
class ErrorResult:
    """A failed call. The client returns this instead of raising."""

    error: ModelError

    @property
    def message(self) -> str:
        return self.error.user_message


CompletionResult = TextResult | StructuredResult | ErrorResult
