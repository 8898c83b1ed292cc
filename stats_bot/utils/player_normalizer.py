"""
Player-stat normalization for parsed game data.

Turns the raw ``players`` list of a game-data payload into an ordered list of
PlayerResult rows. Victory is derived from the declared winner code and each
player's faction:

    winner code 0 -> non-mafia faction wins
    winner code 1 -> mafia faction wins
    absent        -> no winner, every player gets victory=False

The role field comes in two shapes, a plain string (``"don"``) or an object
with a ``type`` key (``{"type": "godfather"}``). Both are resolved through
``parse_role`` / ``resolve_role_name`` before classification. An explicit
``isMafia`` flag on the entry also puts the player in the mafia faction.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from stats_bot.data_models.match_result import PlayerResult
from stats_bot.utils.logger import setup_logger

logger = setup_logger(__name__)

MAFIA_ROLES = frozenset({"mafia", "don", "black_mafia", "godfather"})

WINNER_CIVILIANS = 0
WINNER_MAFIA = 1


@dataclass(frozen=True)
class PlainRole:
    value: str


@dataclass(frozen=True)
class StructuredRole:
    type: Optional[str]


Role = Union[PlainRole, StructuredRole]


def parse_role(raw_player: Dict[str, Any]) -> Optional[Role]:
    """Read the role (or team) field of a raw player entry."""
    raw_role = raw_player.get("role") or raw_player.get("team")
    if isinstance(raw_role, str):
        return PlainRole(raw_role)
    if isinstance(raw_role, dict):
        role_type = raw_role.get("type")
        return StructuredRole(role_type if isinstance(role_type, str) else None)
    return None


def resolve_role_name(role: Optional[Role]) -> Optional[str]:
    if isinstance(role, PlainRole):
        return role.value
    if isinstance(role, StructuredRole):
        return role.type
    return None


def is_mafia_role(role: Optional[Role]) -> bool:
    return resolve_role_name(role) in MAFIA_ROLES


def compute_victory(winner_code: Optional[int], is_mafia: bool) -> bool:
    """Whether a player of the given faction won; False when no winner is declared."""
    # bool is an int subclass; True/False are not winner codes
    if isinstance(winner_code, bool) or not isinstance(winner_code, int):
        return False
    return (winner_code == WINNER_CIVILIANS and not is_mafia) or \
           (winner_code == WINNER_MAFIA and is_mafia)


def _safe_points(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        points = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return points if math.isfinite(points) else 0.0


def _safe_external_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _table_position(raw_player: Dict[str, Any]) -> Optional[float]:
    value = raw_player.get("tablePosition")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # NaN and Infinity are valid JSON to the parser
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


_MISSING = object()


def normalize_players(game_data: Dict[str, Any], winner_code: Any = _MISSING) -> List[PlayerResult]:
    """
    Convert the raw player list into normalized, seat-ordered results.

    Args:
        game_data: Parsed game-data payload
        winner_code: Winner code override; defaults to ``game_data["winnerCode"]``

    Returns:
        One PlayerResult per well-formed player entry, ordered by table position.
        Missing or malformed ``players`` yields an empty list.
    """
    if winner_code is _MISSING:
        winner_code = game_data.get("winnerCode") if isinstance(game_data, dict) else None

    raw_players = game_data.get("players") if isinstance(game_data, dict) else None
    if not isinstance(raw_players, list):
        return []

    entries = []
    for raw_player in raw_players:
        if not isinstance(raw_player, dict):
            logger.debug(f"Skipping malformed player entry: {raw_player!r}")
            continue
        name = raw_player.get("username")
        if not isinstance(name, str) or not name.strip():
            logger.debug(f"Skipping player entry without username: {raw_player!r}")
            continue
        entries.append(raw_player)

    # sorted() is stable; players without a seat keep their relative order at the end
    entries = sorted(
        entries,
        key=lambda p: (_table_position(p) is None, _table_position(p) or 0)
    )

    results = []
    for index, raw_player in enumerate(entries, start=1):
        role = parse_role(raw_player)
        mafia = is_mafia_role(role) or bool(raw_player.get("isMafia"))
        position = _table_position(raw_player)
        results.append(PlayerResult(
            name=raw_player["username"],
            external_id=_safe_external_id(raw_player.get("id")),
            points=_safe_points(raw_player.get("points")),
            position=int(position) if position is not None else index,
            victory=compute_victory(winner_code, mafia),
        ))

    logger.debug(
        f"Normalized {len(results)} players (winnerCode={winner_code!r}, "
        f"winners={sum(1 for r in results if r.victory)})"
    )
    return results
