"""Tests for BotConfig and Event models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from campus_bot.dna.models import DEFAULT_CONFIG, DEFAULT_MAX_LENGTH, DEFAULT_TONE, BotConfig
from campus_bot.errors import ValidationError
from campus_bot.events.models import (
    Event,
    events_from_document,
    events_to_document,
    parse_date_key,
    today_key,
)

# -- BotConfig -----------------------------------------------------------------


def test_defaults_are_fully_populated() -> None:
    doc = DEFAULT_CONFIG.to_document()
    assert set(doc) == {"persona", "tone", "maxLength", "selectedVoiceId"}
    assert doc["maxLength"] == DEFAULT_MAX_LENGTH
    assert doc["selectedVoiceId"] is None


def test_from_document_backfills_missing_fields() -> None:
    config = BotConfig.from_document({"tone": "formal"})

    assert config.tone == "formal"
    assert config.persona == DEFAULT_CONFIG.persona
    assert config.max_length == DEFAULT_MAX_LENGTH


def test_from_document_ignores_null_and_unknown_fields() -> None:
    config = BotConfig.from_document({"tone": None, "legacyField": 1, "selectedVoiceId": "v1"})

    assert config.tone == DEFAULT_TONE
    assert config.selected_voice_id == "v1"


def test_from_document_rejects_non_positive_length() -> None:
    with pytest.raises(PydanticValidationError):
        BotConfig.from_document({"maxLength": 0})


def test_accepts_snake_case_names() -> None:
    config = BotConfig(max_length=20, selected_voice_id="v2")
    assert config.to_document()["maxLength"] == 20
    assert config.to_document()["selectedVoiceId"] == "v2"


# -- Event ---------------------------------------------------------------------


def test_event_rejects_blank_fields() -> None:
    with pytest.raises(PydanticValidationError):
        Event(name="Talk", venue="  ", time="3 PM")


def test_events_document_keeps_order() -> None:
    events = [
        Event(name="A", venue="Hall", time="9 AM"),
        Event(name="B", venue="Gym", time="1 PM"),
    ]
    assert events_from_document(events_to_document(events)) == events


def test_events_from_missing_document_is_empty() -> None:
    assert events_from_document(None) == []
    assert events_from_document({}) == []


def test_events_from_document_skips_malformed_entries() -> None:
    data = {"events": [{"name": "A", "venue": "Hall", "time": "9 AM"}, {"name": "broken"}]}
    assert [e.name for e in events_from_document(data)] == ["A"]


# -- Date keys -----------------------------------------------------------------


def test_parse_date_key_accepts_iso() -> None:
    assert parse_date_key("2026-10-19") == "2026-10-19"


@pytest.mark.parametrize("value", ["2026-13-01", "19/10/2026", "20261019", "", "today"])
def test_parse_date_key_rejects_other_formats(value: str) -> None:
    with pytest.raises(ValidationError):
        parse_date_key(value)


def test_today_key_is_iso() -> None:
    assert parse_date_key(today_key("UTC")) == today_key("UTC")
