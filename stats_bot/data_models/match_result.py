"""
Match ingestion data models.

Immutable data transfer objects passed between the fetch/extract/normalize
stages and the persistence layer, plus the per-match report returned to
callers of the ingestion and reparse operations.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class PlayerResult:
    """One player's normalized result in a single match."""
    name: str
    external_id: Optional[int]
    points: float
    position: int
    victory: bool


@dataclass(frozen=True)
class ParsedMatch:
    """A fetched and normalized match, ready to persist."""
    match_id: int
    players: List[PlayerResult]
    raw_data: Dict[str, Any] = field(default_factory=dict)
    winner_code: Optional[int] = None


@dataclass(frozen=True)
class MatchIngestResult:
    """Outcome of ingesting one external match."""
    match_id: int
    success: bool
    error: Optional[str] = None
    players_count: Optional[int] = None
    skipped: bool = False

    def as_dict(self) -> Dict[str, Any]:
        """Wire shape: {matchId, success, error?|playersCount}"""
        payload: Dict[str, Any] = {"matchId": self.match_id, "success": self.success}
        if self.error is not None:
            payload["error"] = self.error
        if self.players_count is not None:
            payload["playersCount"] = self.players_count
        return payload


@dataclass(frozen=True)
class ReparseSummary:
    """Summary of a full reparse pass."""
    success: bool
    message: str
    matches_processed: int = 0
    matches_failed: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "message": self.message}
