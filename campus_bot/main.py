"""Campus bot entry point."""

import asyncio
import logging

from campus_bot.app import create_services
from campus_bot.config import settings
from campus_bot.knowledge import load_knowledge
from campus_bot.server import BotServer

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def run() -> None:
    """Load the knowledge base, start the mirrors and serve until cancelled."""
    try:
        knowledge = load_knowledge(settings.knowledge_path)
    except (OSError, ValueError):
        logger.exception("Could not load campus location data from %s", settings.knowledge_path)
        knowledge = []

    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is empty, every model call will fail")

    services = create_services(knowledge)
    if not knowledge:
        services.controller.notify("Error: Could not load campus location data.")
    await services.start()
    server = BotServer(services)
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()
        await services.stop()


def main() -> None:
    """Start the campus bot."""
    logger.info("Starting campus bot with model %s...", settings.gemini_model)
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
