"""ConfigSync: live mirror of the operator's Bot DNA document."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from campus_bot.dna.models import DEFAULT_CONFIG, BotConfig
from campus_bot.errors import StoreWriteError
from campus_bot.store.mirror import Mirror

if TYPE_CHECKING:
    from collections.abc import Callable

    from campus_bot.store.documents import DocumentStore, Snapshot

logger = logging.getLogger(__name__)

CONFIG_COLLECTION = "campus_bot_dna"
DNA_LOAD_ERROR = "Error: Could not load bot DNA."


class ConfigSync(Mirror[BotConfig]):
    """Mirrors ``campus_bot_dna/<operator_id>`` into ``current``.

    ``current`` only ever changes when a snapshot arrives: ``update()``
    writes to the store and waits for the subscription to bring the new
    state back. A missing document is created from the defaults on first
    sight; if someone else created it first, their document wins.
    Read failures and invalid documents are reported through *on_error*.
    """

    def __init__(
        self,
        store: DocumentStore,
        operator_id: str,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        super().__init__(store, CONFIG_COLLECTION, operator_id, DEFAULT_CONFIG)
        self._on_error = on_error
        self._read_error_reported = False

    def _read_failed(self, exc: Exception) -> None:
        # One notice per outage; the next applied snapshot re-arms it
        if self._read_error_reported:
            return
        self._read_error_reported = True
        if self._on_error:
            self._on_error(DNA_LOAD_ERROR)

    async def _apply(self, snapshot: Snapshot) -> None:
        self._read_error_reported = False
        if snapshot.data is None:
            self._publish(DEFAULT_CONFIG)
            try:
                created = await self._store.create(
                    CONFIG_COLLECTION, self._key, DEFAULT_CONFIG.to_document()
                )
            except StoreWriteError:
                logger.exception("Could not create default Bot DNA for %s", self._key)
                return
            if created:
                logger.info("Initialised Bot DNA for %s with defaults", self._key)
            return

        try:
            config = BotConfig.from_document(snapshot.data)
        except PydanticValidationError:
            logger.exception("Ignoring invalid Bot DNA document for %s", self._key)
            if self._on_error:
                self._on_error(DNA_LOAD_ERROR)
            return
        self._publish(config)
        logger.info(
            "Bot DNA updated: tone=%r, maxLength=%d, voice=%s",
            config.tone,
            config.max_length,
            config.selected_voice_id,
        )

    async def update(self, partial: dict[str, Any]) -> dict[str, Any]:
        """Merge-write *partial* (camelCase keys) into the remote document.

        Fields absent from *partial* keep their stored values. ``current``
        is not touched here. Raises ``StoreWriteError`` on failure.
        """
        unknown = set(partial) - set(DEFAULT_CONFIG.to_document())
        if unknown:
            raise ValueError(f"Unknown Bot DNA fields: {sorted(unknown)}")
        return await self._store.set(CONFIG_COLLECTION, self._key, partial, merge=True)
