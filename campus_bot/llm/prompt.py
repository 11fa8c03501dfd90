"""Prompt assembly: the persona directive and the grounded campus prompt."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from campus_bot.dna.models import BotConfig
    from campus_bot.events.models import Event

NO_EVENTS_ANSWER = "I don't see any events scheduled for today."

PLAIN_PROSE_RULE = (
    "IMPORTANT: Do not use markdown, bullet points, or asterisks (*). "
    "You must present all lists as a single, natural paragraph."
)

GROUNDING_RULES = f"""\
You are a campus guide. You have two sets of data:
1. A KNOWLEDGE BASE of all permanent locations.
2. A list of TODAY'S EVENTS, which includes a time for each event.

STRICT RULE: If the user asks about a location (e.g., "where is the library"), use the KNOWLEDGE BASE.
STRICT RULE 2: If the user asks about "today's events", "what's happening", or asks about a specific event, use the TODAY'S EVENTS list. You must list the event name, its venue, and its time. If the list is empty, say "{NO_EVENTS_ANSWER}"
STRICT RULE 3: If a user asks about events at a specific time (e.g., "any events this morning?", "what's happening at 2 PM?"), use the 'time' field in the TODAY'S EVENTS list to answer.
FALLBACK RULE: For greetings, respond politely. For *any other question*, you MUST state that you can only provide information about campus locations and today's events.
ABSOLUTE RULE: DO NOT search the web. DO NOT provide any external information."""


def build_persona_directive(config: BotConfig) -> str:
    """Persona, tone and length limit from the Bot DNA."""
    return (
        f"{config.persona} You should use a {config.tone} tone. "
        f"Keep your response text under {config.max_length} words."
    )


def build_grounded_system_instruction(config: BotConfig) -> str:
    return f"{build_persona_directive(config)}\n{PLAIN_PROSE_RULE}"


def build_grounded_prompt(
    utterance: str,
    knowledge: list[Any],
    events: list[Event],
) -> str:
    """Embed the full knowledge base and today's events around the query.

    Nothing is filtered or ranked; both data sets are passed in full on
    every turn.
    """
    events_data = [event.model_dump() for event in events]
    return (
        "[KNOWLEDGE BASE (Locations)]\n"
        f"{json.dumps(knowledge, ensure_ascii=False)}\n"
        "[END KNOWLEDGE BASE]\n\n"
        "[TODAY'S EVENTS (Name, Venue, & Time)]\n"
        f"{json.dumps(events_data, ensure_ascii=False)}\n"
        "[END TODAY'S EVENTS]\n\n"
        f"{GROUNDING_RULES}\n\n"
        f"User Query: {utterance}"
    )
