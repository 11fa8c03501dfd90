"""Wiring: build, start and stop every long-lived component."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from campus_bot.admin.service import AdminService
from campus_bot.bot.controller import ConversationController
from campus_bot.config import settings
from campus_bot.dna.sync import ConfigSync
from campus_bot.events.feed import EventFeed
from campus_bot.events.store import EventStore
from campus_bot.llm.client import ModelClient, get_model_client
from campus_bot.optimizer import OptimizerPipeline
from campus_bot.speech import LoggingSpeaker
from campus_bot.store.documents import DocumentStore

if TYPE_CHECKING:
    from campus_bot.speech import Speaker

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the HTTP surface needs, sharing one store and one client."""

    store: DocumentStore
    client: ModelClient
    config_sync: ConfigSync
    todays_events: EventFeed
    events: EventStore
    optimizer: OptimizerPipeline
    controller: ConversationController
    admin: AdminService

    async def start(self) -> None:
        await self.config_sync.start()
        await self.todays_events.start()
        self.controller.greet()
        logger.info(
            "Campus bot ready (operator=%s, events for %s: %d)",
            self.config_sync.key,
            self.todays_events.date,
            len(self.todays_events.current),
        )

    async def stop(self) -> None:
        await self.todays_events.stop()
        await self.config_sync.stop()
        await self.client.close()


def create_services(
    knowledge: list[Any],
    *,
    store: DocumentStore | None = None,
    client: ModelClient | None = None,
    speaker: Speaker | None = None,
    operator_id: str | None = None,
) -> Services:
    store = store or DocumentStore.get()
    client = client or get_model_client()
    speaker = speaker or LoggingSpeaker()
    events = EventStore(store)
    todays_events = EventFeed.for_today(store)

    controller: ConversationController | None = None

    def _report_config_error(message: str) -> None:
        if controller is not None:
            controller.notify(message)

    config_sync = ConfigSync(
        store, operator_id or settings.operator_id, on_error=_report_config_error
    )
    controller = ConversationController(
        client=client,
        config=config_sync,
        events=todays_events,
        knowledge=knowledge,
        speaker=speaker,
    )
    optimizer = OptimizerPipeline(client, config_sync)
    admin = AdminService(
        config_sync=config_sync,
        events=events,
        optimizer=optimizer,
        speaker=speaker,
        password=settings.admin_password,
    )
    return Services(
        store=store,
        client=client,
        config_sync=config_sync,
        todays_events=todays_events,
        events=events,
        optimizer=optimizer,
        controller=controller,
        admin=admin,
    )
