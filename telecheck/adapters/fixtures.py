"""Fixture file adapter.

Loads expected wire-format messages from JSON files (protobuf JSON
mapping) and turns them into Fixture objects.
"""

import json
import logging
from pathlib import Path
from typing import Any

from telecheck.core.models import Fixture

logger = logging.getLogger(__name__)


def parse_fixture(name: str, text: str) -> Fixture:
    """Build a Fixture from a JSON document.

    Raises:
        ValueError: If the text is not a JSON object.
    """
    try:
        message: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"fixture {name!r} is not valid JSON: {e}") from e
    if not isinstance(message, dict):
        raise ValueError(f"fixture {name!r} must be a JSON object, got {type(message).__name__}")
    return Fixture(name=name, message=message)


def load_fixture(name: str, path: str | Path) -> Fixture:
    """Read and parse a fixture file.

    Args:
        name: Fixture label used in diagnostics.
        path: Path to a JSON file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not a JSON object.
    """
    fixture_path = Path(path)
    try:
        text = fixture_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to read fixture {name} from {fixture_path}: {e}")
        raise
    fixture = parse_fixture(name, text)
    logger.debug(f"Loaded fixture {name} from {fixture_path}")
    return fixture
