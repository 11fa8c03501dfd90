"""Optimizer pipeline: rewrite the Bot DNA from free-text operator feedback."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from campus_bot.errors import ExhaustedRetriesError, ModelRequestError, StoreWriteError
from campus_bot.llm.request import ErrorResult, GenerationRequest, StructuredResult

if TYPE_CHECKING:
    from campus_bot.dna.models import BotConfig
    from campus_bot.dna.sync import ConfigSync
    from campus_bot.llm.client import ModelClient

logger = logging.getLogger(__name__)

OPTIMIZER_SYSTEM_INSTRUCTION = """\
You are the Optimizer AI. Your task is to analyze user feedback and the AI's current configuration (DNA).
Your ONLY output must be a valid JSON object adhering to the schema."""

OPTIMIZER_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "persona": {"type": "STRING"},
        "tone": {"type": "STRING"},
        "maxLength": {"type": "NUMBER"},
    },
    "required": ["persona", "tone", "maxLength"],
}

SUCCESS_MESSAGE = "Success! Bot DNA has been upgraded and saved."
BUSY_MESSAGE = "The Optimizer AI is already running. Please wait for it to finish."
EMPTY_FEEDBACK_MESSAGE = "Please enter some feedback for the Optimizer AI."
INVALID_OUTPUT_MESSAGE = "Error: Optimizer AI failed to return valid JSON. Please try again."
UNREACHABLE_MESSAGE = "Error: Optimizer AI could not be reached. Please try again."
SAVE_FAILED_MESSAGE = "Error saving new DNA."


class SchemaViolation(ValueError):
    """The optimizer's JSON did not match the expected field types."""


@dataclass
class OptimizationResult:
    """Outcome of one optimizer run.

    ``config`` holds the partial Bot DNA that was written, only on success.
    """

    success: bool
    message: str
    config: dict[str, Any] | None = None
    busy: bool = False


def build_optimizer_request(feedback: str, current: BotConfig) -> GenerationRequest:
    current_json = json.dumps(current.to_document(), indent=2)
    prompt = (
        "Analyze the requirements and output the new, updated JSON configuration (DNA):\n"
        "---\n"
        f'**User Feedback:** "{feedback}"\n'
        f"**Current DNA:** {current_json}\n"
        "---"
    )
    return GenerationRequest(
        prompt=prompt,
        system_instruction=OPTIMIZER_SYSTEM_INSTRUCTION,
        output_schema=OPTIMIZER_SCHEMA,
    )


def merge_optimizer_output(data: dict[str, Any], current: BotConfig) -> dict[str, Any]:
    """Fill falsy or missing fields from *current* and check types.

    Only ``persona``, ``tone`` and ``maxLength`` are returned; the voice
    selection is never part of an optimizer update.
    """
    persona = data.get("persona") or current.persona
    tone = data.get("tone") or current.tone
    max_length = data.get("maxLength") or current.max_length

    if not isinstance(persona, str) or not isinstance(tone, str):
        raise SchemaViolation("persona and tone must be strings")
    if isinstance(max_length, bool) or not isinstance(max_length, int | float):
        raise SchemaViolation("maxLength must be a number")
    if not math.isfinite(max_length):
        raise SchemaViolation("maxLength must be finite")
    max_length = int(max_length)
    if max_length <= 0:
        max_length = current.max_length

    return {"persona": persona, "tone": tone, "maxLength": max_length}


class OptimizerPipeline:
    """Turns operator feedback into a Bot DNA update.

    At most one run at a time; a call made while another is in flight is
    rejected, not queued.
    """

    def __init__(self, client: ModelClient, config_sync: ConfigSync) -> None:
        self._client = client
        self._config_sync = config_sync
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def optimize(self, feedback: str, current: BotConfig) -> OptimizationResult:
        if self._running:
            return OptimizationResult(success=False, message=BUSY_MESSAGE, busy=True)
        if not feedback or not feedback.strip():
            return OptimizationResult(success=False, message=EMPTY_FEEDBACK_MESSAGE)

        self._running = True
        try:
            logger.info("Optimizer run started: %s", feedback[:80])
            return await self._run(feedback.strip(), current)
        finally:
            self._running = False

    async def _run(self, feedback: str, current: BotConfig) -> OptimizationResult:
        result = await self._client.complete_request(build_optimizer_request(feedback, current))

        if isinstance(result, ErrorResult):
            if isinstance(result.error, (ExhaustedRetriesError, ModelRequestError)):
                logger.error("Optimizer request failed: %s", result.error)
                return OptimizationResult(success=False, message=UNREACHABLE_MESSAGE)
            logger.error("Optimizer returned no usable output: %s", result.error)
            return OptimizationResult(success=False, message=INVALID_OUTPUT_MESSAGE)
        if not isinstance(result, StructuredResult):
            logger.error("Optimizer returned text instead of JSON")
            return OptimizationResult(success=False, message=INVALID_OUTPUT_MESSAGE)

        try:
            partial = merge_optimizer_output(result.data, current)
        except SchemaViolation as exc:
            logger.error("Optimizer output failed validation: %s", exc)
            return OptimizationResult(success=False, message=INVALID_OUTPUT_MESSAGE)

        try:
            await self._config_sync.update(partial)
        except StoreWriteError:
            return OptimizationResult(success=False, message=SAVE_FAILED_MESSAGE)

        logger.info("Bot DNA upgraded: tone=%r, maxLength=%d", partial["tone"], partial["maxLength"])
        return OptimizationResult(success=True, message=SUCCESS_MESSAGE, config=partial)
