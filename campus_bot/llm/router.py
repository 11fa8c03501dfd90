"""Query router: grounded campus answer or open web search."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from campus_bot.llm.prompt import (
    build_grounded_prompt,
    build_grounded_system_instruction,
    build_persona_directive,
)
from campus_bot.llm.request import GenerationRequest

if TYPE_CHECKING:
    from campus_bot.dna.models import BotConfig
    from campus_bot.events.models import Event

logger = logging.getLogger(__name__)

WEB_SEARCH_TRIGGERS: tuple[str, ...] = (
    "search for",
    "what is",
    "who is",
    "when did",
    "google",
    "tell me about",
)


def is_web_search(utterance: str) -> bool:
    """True if the utterance starts with a web-search trigger (any case)."""
    return utterance.strip().lower().startswith(WEB_SEARCH_TRIGGERS)


def route(
    utterance: str,
    config: BotConfig,
    knowledge: list[Any],
    todays_events: list[Event],
) -> GenerationRequest:
    """Build the single model request that answers *utterance*.

    Web-search queries go to the model as-is with the search tool enabled.
    Everything else is grounded: the knowledge base and today's events are
    embedded in the prompt and the search tool stays off.
    """
    if is_web_search(utterance):
        logger.info("Routing to web search: %s", utterance[:80])
        return GenerationRequest(
            prompt=utterance,
            system_instruction=build_persona_directive(config),
            web_search=True,
        )

    logger.info(
        "Routing to grounded answer (%d locations, %d events): %s",
        len(knowledge),
        len(todays_events),
        utterance[:80],
    )
    return GenerationRequest(
        prompt=build_grounded_prompt(utterance, knowledge, todays_events),
        system_instruction=build_grounded_system_instruction(config),
    )
