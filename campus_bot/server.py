"""Async HTTP surface for the chat and the operator admin panel.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop in the same
event loop as the store subscriptions. Admin routes require the shared
operator secret in the ``X-Admin-Secret`` header.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

from aiohttp import web

from campus_bot.admin.service import WRONG_PASSWORD
from campus_bot.app import Services
from campus_bot.config import settings
from campus_bot.errors import StoreWriteError, ValidationError

logger = logging.getLogger(__name__)

SERVICES = web.AppKey("services", Services)

# Seconds between keepalive comments on an idle event stream
WATCH_HEARTBEAT = 15.0


def _services(request: web.Request) -> Services:
    return request.app[SERVICES]


async def _read_json(request: web.Request) -> dict[str, Any] | None:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _authorized(request: web.Request) -> bool:
    secret = request.headers.get("X-Admin-Secret", "")
    if _services(request).admin.verify_secret(secret):
        return True
    logger.warning("Admin request rejected: invalid secret (%s %s)", request.method, request.path)
    return False


def _unauthorized() -> web.Response:
    return web.json_response({"error": WRONG_PASSWORD}, status=401)


def _events_payload(date: str, events: list) -> dict[str, Any]:
    return {"date": date, "events": [e.model_dump() for e in events]}


# -- Public routes -------------------------------------------------------------


async def _health(request: web.Request) -> web.Response:
    """GET /health: basic liveness check."""
    return web.json_response({"status": "ok"})


async def _handle_chat(request: web.Request) -> web.Response:
    """POST /chat: run one conversational turn."""
    payload = await _read_json(request)
    if payload is None:
        return web.json_response({"error": "invalid JSON"}, status=400)
    text = payload.get("text")
    if not isinstance(text, str) or not text.strip():
        return web.json_response({"error": "text is required"}, status=400)

    reply = await _services(request).controller.process_turn(text)
    if reply is None:
        return web.json_response({"error": "a response is still being generated"}, status=409)
    return web.json_response({"reply": reply.to_dict()})


async def _transcript(request: web.Request) -> web.Response:
    """GET /transcript: the visible conversation."""
    return web.json_response({"messages": _services(request).controller.transcript.to_list()})


# -- Admin routes --------------------------------------------------------------


async def _get_config(request: web.Request) -> web.Response:
    if not _authorized(request):
        return _unauthorized()
    admin = _services(request).admin
    voices = [{"id": v.id, "name": v.name, "lang": v.lang} for v in admin.available_voices()]
    return web.json_response({"config": admin.current_config(), "voices": voices})


async def _set_voice(request: web.Request) -> web.Response:
    if not _authorized(request):
        return _unauthorized()
    payload = await _read_json(request)
    if payload is None:
        return web.json_response({"error": "invalid JSON"}, status=400)
    voice_id = payload.get("voiceId")
    if voice_id is not None and not isinstance(voice_id, str):
        return web.json_response({"error": "voiceId must be a string or null"}, status=400)
    try:
        await _services(request).admin.set_voice(voice_id)
    except StoreWriteError:
        return web.json_response({"error": "Failed to save voice preference."}, status=502)
    return web.json_response({"ok": True})


async def _submit_feedback(request: web.Request) -> web.Response:
    if not _authorized(request):
        return _unauthorized()
    payload = await _read_json(request)
    if payload is None:
        return web.json_response({"error": "invalid JSON"}, status=400)
    feedback = payload.get("feedback")
    if not isinstance(feedback, str) or not feedback.strip():
        return web.json_response({"error": "feedback is required"}, status=400)

    result = await _services(request).admin.submit_feedback(feedback)
    if result.busy:
        status = 409
    elif result.success:
        status = 200
    else:
        status = 502
    return web.json_response(
        {"ok": result.success, "message": result.message, "config": result.config},
        status=status,
    )


async def _list_events(request: web.Request) -> web.Response:
    if not _authorized(request):
        return _unauthorized()
    date = request.match_info["date"]
    try:
        events = await _services(request).admin.list_events(date)
    except ValidationError as exc:
        return web.json_response({"error": str(exc)}, status=400)
    return web.json_response(_events_payload(date, events))


async def _add_event(request: web.Request) -> web.Response:
    if not _authorized(request):
        return _unauthorized()
    payload = await _read_json(request)
    if payload is None:
        return web.json_response({"error": "invalid JSON"}, status=400)
    date = request.match_info["date"]
    try:
        events = await _services(request).admin.add_event(
            date,
            name=payload.get("name", ""),
            venue=payload.get("venue", ""),
            time=payload.get("time", ""),
        )
    except ValidationError as exc:
        return web.json_response({"error": str(exc)}, status=400)
    except StoreWriteError:
        return web.json_response({"error": "Failed to add event."}, status=502)
    return web.json_response(_events_payload(date, events), status=201)


async def _delete_event(request: web.Request) -> web.Response:
    if not _authorized(request):
        return _unauthorized()
    date = request.match_info["date"]
    try:
        index = int(request.match_info["index"])
    except ValueError:
        return web.json_response({"error": "index must be an integer"}, status=400)
    try:
        events = await _services(request).admin.delete_event(date, index)
    except ValidationError as exc:
        return web.json_response({"error": str(exc)}, status=400)
    except StoreWriteError:
        return web.json_response({"error": "Failed to delete event."}, status=502)
    return web.json_response(_events_payload(date, events))


async def _watch_events(request: web.Request) -> web.StreamResponse:
    """GET /admin/events/{date}/watch: server-sent events, one per change."""
    if not _authorized(request):
        return _unauthorized()
    date = request.match_info["date"]
    stream = _services(request).events.watch(date)
    async with contextlib.aclosing(stream):
        try:
            events = await anext(stream)
        except ValidationError as exc:
            return web.json_response({"error": str(exc)}, status=400)

        resp = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
        await resp.prepare(request)
        chunk = f"data: {json.dumps(_events_payload(date, events))}\n\n"
        pending: asyncio.Task | None = None
        try:
            while True:
                try:
                    await resp.write(chunk.encode())
                except ConnectionResetError:
                    logger.info("Event watcher for %s disconnected", date)
                    break
                if pending is None:
                    pending = asyncio.ensure_future(anext(stream))
                done, _ = await asyncio.wait({pending}, timeout=WATCH_HEARTBEAT)
                if not done:
                    chunk = ": keepalive\n\n"
                    continue
                try:
                    events = pending.result()
                except StopAsyncIteration:
                    break
                pending = None
                chunk = f"data: {json.dumps(_events_payload(date, events))}\n\n"
        finally:
            if pending is not None and not pending.done():
                pending.cancel()
                with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                    await pending
    return resp


def _create_web_app(services: Services) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[SERVICES] = services
    app.router.add_get("/health", _health)
    app.router.add_post("/chat", _handle_chat)
    app.router.add_get("/transcript", _transcript)
    app.router.add_get("/admin/config", _get_config)
    app.router.add_put("/admin/config/voice", _set_voice)
    app.router.add_post("/admin/feedback", _submit_feedback)
    app.router.add_get("/admin/events/{date}", _list_events)
    app.router.add_post("/admin/events/{date}", _add_event)
    app.router.add_delete("/admin/events/{date}/{index}", _delete_event)
    app.router.add_get("/admin/events/{date}/watch", _watch_events)
    return app


class BotServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(self, services: Services, host: str | None = None, port: int | None = None) -> None:
        self.services = services
        self.host = host or settings.server_host
        self.port = port or settings.server_port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        app = _create_web_app(self.services)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Campus bot listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Campus bot server stopped")
