"""Static campus location dataset, loaded once at startup."""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def load_knowledge(path: Path) -> list[Any]:
    """Read the location records from a JSON file.

    The records are opaque to the bot and passed to the model verbatim.
    A single top-level object is treated as a one-record dataset.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list of location records")
    logger.info("Loaded %d location record(s) from %s", len(data), path)
    return data
