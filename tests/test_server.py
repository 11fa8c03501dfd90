"""Tests for the aiohttp chat and admin surface."""

import asyncio

import pytest
from aiohttp.test_utils import TestClient, TestServer

from campus_bot.app import Services, create_services
from campus_bot.llm.request import StructuredResult, TextResult
from campus_bot.server import _create_web_app
from campus_bot.speech import LoggingSpeaker, Voice
from campus_bot.store.documents import DocumentStore
from tests.helpers import FakeModelClient, wait_until

pytestmark = pytest.mark.usefixtures("_no_turso")

SECRET = "test-secret-123"
DAY = "2026-10-19"
KNOWLEDGE = [{"name": "Library", "directions": "North side of the quad"}]
AUTH = {"X-Admin-Secret": SECRET}


@pytest.fixture
async def services(store: DocumentStore, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("campus_bot.config.settings.admin_password", SECRET)
    svc = create_services(
        KNOWLEDGE,
        store=store,
        client=FakeModelClient(),
        speaker=LoggingSpeaker([Voice(id="v1", name="Ava", lang="en-US")]),
        operator_id="op",
    )
    await svc.start()
    yield svc
    await svc.stop()


@pytest.fixture
async def client(services: Services):
    test_client = TestClient(TestServer(_create_web_app(services)))
    await test_client.start_server()
    yield test_client
    await test_client.close()


# -- Public routes -------------------------------------------------------------


async def test_health_check(client: TestClient) -> None:
    resp = await client.get("/health")
    assert resp.status == 200
    assert (await resp.json())["status"] == "ok"


async def test_greeting_in_transcript(client: TestClient) -> None:
    resp = await client.get("/transcript")
    messages = (await resp.json())["messages"]
    assert len(messages) == 1
    assert messages[0]["sender"] == "assistant"
    assert messages[0]["text"].startswith("Hello! I am your campus assistant.")


async def test_chat_turn(client: TestClient, services: Services) -> None:
    services.client.results.append(TextResult("North side of the quad."))

    resp = await client.post("/chat", json={"text": "where is the library"})

    assert resp.status == 200
    reply = (await resp.json())["reply"]
    assert reply["sender"] == "assistant"
    assert reply["text"] == "North side of the quad."
    transcript = (await (await client.get("/transcript")).json())["messages"]
    assert [m["sender"] for m in transcript] == ["assistant", "user", "assistant"]


async def test_chat_rejects_blank_text(client: TestClient) -> None:
    resp = await client.post("/chat", json={"text": "  "})
    assert resp.status == 400


async def test_chat_rejects_invalid_json(client: TestClient) -> None:
    resp = await client.post("/chat", data="not json")
    assert resp.status == 400


async def test_chat_while_pending_returns_conflict(client: TestClient, services: Services) -> None:
    services.client.gate = asyncio.Event()
    first = asyncio.create_task(client.post("/chat", json={"text": "where is the library"}))
    await wait_until(lambda: services.controller.pending)

    resp = await client.post("/chat", json={"text": "where is the gym"})
    assert resp.status == 409

    services.client.gate.set()
    assert (await first).status == 200


# -- Admin auth ----------------------------------------------------------------


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("GET", "/admin/config"),
        ("PUT", "/admin/config/voice"),
        ("POST", "/admin/feedback"),
        ("GET", f"/admin/events/{DAY}"),
        ("POST", f"/admin/events/{DAY}"),
        ("DELETE", f"/admin/events/{DAY}/0"),
        ("GET", f"/admin/events/{DAY}/watch"),
    ],
)
async def test_admin_routes_require_secret(client: TestClient, method: str, path: str) -> None:
    resp = await client.request(method, path, headers={"X-Admin-Secret": "wrong"})
    assert resp.status == 401


# -- Admin: config -------------------------------------------------------------


async def test_get_config(client: TestClient) -> None:
    resp = await client.get("/admin/config", headers=AUTH)

    assert resp.status == 200
    data = await resp.json()
    assert data["config"]["maxLength"] == 100
    assert data["voices"] == [{"id": "v1", "name": "Ava", "lang": "en-US"}]


async def test_set_voice(client: TestClient, services: Services) -> None:
    resp = await client.put("/admin/config/voice", json={"voiceId": "v1"}, headers=AUTH)

    assert resp.status == 200
    await wait_until(lambda: services.config_sync.current.selected_voice_id == "v1")


async def test_feedback_success(client: TestClient, services: Services) -> None:
    services.client.results.append(StructuredResult({"tone": "formal", "maxLength": 50}))

    resp = await client.post("/admin/feedback", json={"feedback": "be formal"}, headers=AUTH)

    assert resp.status == 200
    data = await resp.json()
    assert data["ok"] is True
    assert data["config"]["tone"] == "formal"
    await wait_until(lambda: services.config_sync.current.max_length == 50)


async def test_feedback_invalid_output(client: TestClient, services: Services) -> None:
    services.client.results.append(TextResult("not json"))

    resp = await client.post("/admin/feedback", json={"feedback": "be formal"}, headers=AUTH)

    assert resp.status == 502
    assert (await resp.json())["ok"] is False


async def test_feedback_requires_text(client: TestClient) -> None:
    resp = await client.post("/admin/feedback", json={"feedback": ""}, headers=AUTH)
    assert resp.status == 400


# -- Admin: events -------------------------------------------------------------


async def test_add_list_delete_events(client: TestClient) -> None:
    resp = await client.post(
        f"/admin/events/{DAY}",
        json={"name": "Career Fair", "venue": "Union", "time": "2 PM"},
        headers=AUTH,
    )
    assert resp.status == 201
    assert (await resp.json())["events"] == [
        {"name": "Career Fair", "venue": "Union", "time": "2 PM"}
    ]

    resp = await client.get(f"/admin/events/{DAY}", headers=AUTH)
    assert len((await resp.json())["events"]) == 1

    resp = await client.delete(f"/admin/events/{DAY}/0", headers=AUTH)
    assert resp.status == 200
    assert (await resp.json())["events"] == []


async def test_add_event_missing_field(client: TestClient) -> None:
    resp = await client.post(
        f"/admin/events/{DAY}", json={"name": "Career Fair", "venue": ""}, headers=AUTH
    )
    assert resp.status == 400
    assert "name, venue, and time" in (await resp.json())["error"]


async def test_delete_event_bad_index(client: TestClient) -> None:
    resp = await client.delete(f"/admin/events/{DAY}/5", headers=AUTH)
    assert resp.status == 400


async def test_events_bad_date(client: TestClient) -> None:
    resp = await client.get("/admin/events/not-a-date", headers=AUTH)
    assert resp.status == 400


async def test_todays_events_reach_the_bot(client: TestClient, services: Services) -> None:
    today = services.todays_events.date
    await client.post(
        f"/admin/events/{today}",
        json={"name": "Open Mic", "venue": "Cafe", "time": "8 PM"},
        headers=AUTH,
    )
    await wait_until(lambda: len(services.todays_events.current) == 1)

    await client.post("/chat", json={"text": "what's happening tonight"})

    assert "Open Mic" in services.client.requests[-1].prompt


async def test_watch_streams_event_lists(client: TestClient, services: Services) -> None:
    resp = await client.get(f"/admin/events/{DAY}/watch", headers=AUTH)
    assert resp.status == 200
    first = await asyncio.wait_for(resp.content.readline(), timeout=2)
    assert first.startswith(b"data: ")
    assert b'"events": []' in first

    await services.admin.add_event(DAY, "Career Fair", "Union", "2 PM")

    line = b""
    while not line.startswith(b"data: "):
        line = await asyncio.wait_for(resp.content.readline(), timeout=2)
    assert b"Career Fair" in line
    resp.close()
