"""Shared test fixtures."""

from pathlib import Path

import pytest

from campus_bot.store.documents import DocumentStore
from tests.helpers import FakeModelClient


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("campus_bot.config.settings.turso_database_url", "")


@pytest.fixture
def store(tmp_path: Path, _no_turso: None):
    """The shared DocumentStore, backed by a temp database with a fast poll."""
    DocumentStore._reset()
    s = DocumentStore(db_path=tmp_path / "test.db", poll_interval=0.05)
    DocumentStore._instance = s
    yield s
    DocumentStore._reset()


@pytest.fixture
def fake_client() -> FakeModelClient:
    return FakeModelClient()
