"""Tests for the Optimizer pipeline."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from campus_bot.dna.models import BotConfig
from campus_bot.errors import (
    BlockedContentError,
    ExhaustedRetriesError,
    MalformedStructuredResponseError,
    ModelRequestError,
    StoreWriteError,
)
from campus_bot.llm.request import ErrorResult, StructuredResult, TextResult
from campus_bot.optimizer import (
    BUSY_MESSAGE,
    EMPTY_FEEDBACK_MESSAGE,
    INVALID_OUTPUT_MESSAGE,
    OPTIMIZER_SCHEMA,
    SAVE_FAILED_MESSAGE,
    SUCCESS_MESSAGE,
    UNREACHABLE_MESSAGE,
    OptimizerPipeline,
    SchemaViolation,
    build_optimizer_request,
    merge_optimizer_output,
)
from tests.helpers import FakeModelClient

CURRENT = BotConfig(persona="You are Sparky.", tone="casual", maxLength=100, selectedVoiceId="v1")


def _pipeline(*results) -> tuple[OptimizerPipeline, FakeModelClient, AsyncMock]:
    client = FakeModelClient(*results)
    config_sync = AsyncMock()
    config_sync.update = AsyncMock(return_value={})
    return OptimizerPipeline(client, config_sync), client, config_sync


# -- request -------------------------------------------------------------------


def test_request_is_structured_without_search() -> None:
    request = build_optimizer_request("be more formal", CURRENT)

    assert request.output_schema == OPTIMIZER_SCHEMA
    assert request.web_search is False
    assert "be more formal" in request.prompt
    assert json.dumps(CURRENT.to_document(), indent=2) in request.prompt
    assert "Optimizer AI" in request.system_instruction


def test_schema_requires_three_fields() -> None:
    assert OPTIMIZER_SCHEMA["required"] == ["persona", "tone", "maxLength"]


# -- merge_optimizer_output ----------------------------------------------------


def test_missing_tone_falls_back_to_current() -> None:
    merged = merge_optimizer_output({"persona": "New", "maxLength": 50}, CURRENT)
    assert merged == {"persona": "New", "tone": "casual", "maxLength": 50}


def test_falsy_values_fall_back() -> None:
    merged = merge_optimizer_output({"persona": "", "tone": None, "maxLength": 0}, CURRENT)
    assert merged == {"persona": "You are Sparky.", "tone": "casual", "maxLength": 100}


def test_float_length_is_truncated() -> None:
    assert merge_optimizer_output({"maxLength": 80.7}, CURRENT)["maxLength"] == 80


def test_negative_length_falls_back() -> None:
    assert merge_optimizer_output({"maxLength": -3}, CURRENT)["maxLength"] == 100


def test_voice_is_never_included() -> None:
    merged = merge_optimizer_output({"selectedVoiceId": "other", "tone": "x"}, CURRENT)
    assert "selectedVoiceId" not in merged


@pytest.mark.parametrize(
    "data",
    [{"tone": 5}, {"persona": ["a"]}, {"maxLength": "long"}, {"maxLength": True}],
)
def test_wrong_types_are_schema_violations(data: dict) -> None:
    with pytest.raises(SchemaViolation):
        merge_optimizer_output(data, CURRENT)


# -- optimize ------------------------------------------------------------------


async def test_success_writes_merged_partial() -> None:
    pipeline, client, config_sync = _pipeline(
        StructuredResult({"persona": "You are Professor Sparky.", "maxLength": 60})
    )

    result = await pipeline.optimize("be more academic", CURRENT)

    assert result.success
    assert result.message == SUCCESS_MESSAGE
    expected = {"persona": "You are Professor Sparky.", "tone": "casual", "maxLength": 60}
    assert result.config == expected
    config_sync.update.assert_awaited_once_with(expected)
    assert len(client.requests) == 1


async def test_blank_feedback_rejected_without_model_call() -> None:
    pipeline, client, config_sync = _pipeline()

    result = await pipeline.optimize("   ", CURRENT)

    assert not result.success
    assert result.message == EMPTY_FEEDBACK_MESSAGE
    assert client.requests == []
    config_sync.update.assert_not_awaited()


@pytest.mark.parametrize(
    "error",
    [
        MalformedStructuredResponseError("bad json"),
        BlockedContentError("SAFETY"),
    ],
)
async def test_invalid_output_leaves_config_untouched(error) -> None:
    pipeline, _, config_sync = _pipeline(ErrorResult(error))

    result = await pipeline.optimize("be formal", CURRENT)

    assert not result.success
    assert result.message == INVALID_OUTPUT_MESSAGE
    config_sync.update.assert_not_awaited()


async def test_schema_violation_leaves_config_untouched() -> None:
    pipeline, _, config_sync = _pipeline(StructuredResult({"maxLength": "very long"}))

    result = await pipeline.optimize("be formal", CURRENT)

    assert result.message == INVALID_OUTPUT_MESSAGE
    config_sync.update.assert_not_awaited()


async def test_text_result_is_treated_as_invalid_output() -> None:
    pipeline, _, config_sync = _pipeline(TextResult("here is your config"))

    result = await pipeline.optimize("be formal", CURRENT)

    assert result.message == INVALID_OUTPUT_MESSAGE
    config_sync.update.assert_not_awaited()


async def test_transport_exhaustion_has_distinct_message() -> None:
    pipeline, _, config_sync = _pipeline(ErrorResult(ExhaustedRetriesError(3)))

    result = await pipeline.optimize("be formal", CURRENT)

    assert result.message == UNREACHABLE_MESSAGE
    assert result.message != INVALID_OUTPUT_MESSAGE
    config_sync.update.assert_not_awaited()


async def test_unsendable_request_reports_unreachable() -> None:
    pipeline, _, config_sync = _pipeline(ErrorResult(ModelRequestError("Invalid model URL")))

    result = await pipeline.optimize("be formal", CURRENT)

    assert not result.success
    assert result.message == UNREACHABLE_MESSAGE
    config_sync.update.assert_not_awaited()


async def test_store_failure_is_reported() -> None:
    pipeline, _, config_sync = _pipeline(StructuredResult({"tone": "formal"}))
    config_sync.update.side_effect = StoreWriteError("down")

    result = await pipeline.optimize("be formal", CURRENT)

    assert not result.success
    assert result.message == SAVE_FAILED_MESSAGE
    assert not pipeline.running


async def test_second_call_while_running_is_rejected() -> None:
    pipeline, client, config_sync = _pipeline(StructuredResult({"tone": "formal"}))
    client.gate = asyncio.Event()

    first = asyncio.create_task(pipeline.optimize("be formal", CURRENT))
    await asyncio.sleep(0)
    assert pipeline.running

    second = await pipeline.optimize("be silly", CURRENT)
    assert second.busy
    assert second.message == BUSY_MESSAGE

    client.gate.set()
    result = await first
    assert result.success
    assert len(client.requests) == 1
    assert not pipeline.running


async def test_flag_cleared_when_client_raises() -> None:
    pipeline, client, _ = _pipeline()
    client.complete_request = AsyncMock(side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        await pipeline.optimize("be formal", CURRENT)
    assert not pipeline.running
