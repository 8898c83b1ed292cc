"""
Game data extraction.

Match pages embed the whole game state as a JSON object inside a single-quoted
attribute, e.g. ``:game-data='{...}'``. The attribute name (and, on older
pages, a trailing ``:user=`` attribute) is configurable because the page
markup has changed over time.
"""

import json
import re
from typing import Any, Dict, Optional, Pattern

from stats_bot.config import Config
from stats_bot.utils.ingestion_errors import ExtractionFailedError


# Body of a single-quoted value: anything up to the first unescaped quote
_QUOTED_BODY = r"((?:\\.|[^'\\])*?)"


def build_game_data_pattern(marker: str, terminator: Optional[str] = None) -> Pattern:
    """
    Compile the pattern that captures the embedded game-data JSON.

    Args:
        marker: Literal token preceding the quoted JSON (e.g. ``:game-data=``)
        terminator: Optional literal token that must follow the closing quote

    Returns:
        Compiled pattern with the JSON text in group 1
    """
    if not marker:
        raise ValueError("marker must not be empty")

    pattern = re.escape(marker) + r"\s*'" + _QUOTED_BODY + "'"
    if terminator:
        pattern += r"\s+" + re.escape(terminator)
    return re.compile(pattern, re.DOTALL)


DEFAULT_PATTERN = build_game_data_pattern(Config.GAME_DATA_MARKER, Config.GAME_DATA_TERMINATOR)


def extract_game_data(html: str, pattern: Optional[Pattern] = None,
                      match_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Locate and parse the embedded game data in a match-detail document.

    Raises:
        ExtractionFailedError: ``pattern not found`` when no marker is present,
            ``invalid json`` when the captured text is not a JSON object
    """
    found = (pattern or DEFAULT_PATTERN).search(html or "")
    if not found:
        raise ExtractionFailedError(ExtractionFailedError.PATTERN_NOT_FOUND, match_id)

    try:
        game_data = json.loads(found.group(1))
    except json.JSONDecodeError:
        raise ExtractionFailedError(ExtractionFailedError.INVALID_JSON, match_id)

    if not isinstance(game_data, dict):
        raise ExtractionFailedError(ExtractionFailedError.INVALID_JSON, match_id)

    return game_data
