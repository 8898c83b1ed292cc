"""
Standings data models.

Immutable data transfer objects for tournament standings, game day standings,
the overall leaderboard and player profiles.
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional


@dataclass(frozen=True)
class StandingEntry:
    """Single standings row within a tournament or game day."""
    rank: int
    player_id: int
    name: str
    points: float
    matches: int
    wins: int
    best_position: Optional[int] = None

    @property
    def average_points(self) -> float:
        return self.points / self.matches if self.matches else 0.0


@dataclass(frozen=True)
class TournamentStandings:
    tournament_id: int
    tournament_name: str
    entries: List[StandingEntry]
    game_days: int = 0
    matches: int = 0


@dataclass(frozen=True)
class GameDayStandings:
    game_day_id: int
    tournament_id: int
    day_number: int
    entries: List[StandingEntry]
    matches: int = 0


@dataclass(frozen=True)
class LeaderboardEntry:
    """Overall leaderboard row, read from the running totals."""
    rank: int
    player_id: int
    name: str
    total_points: float
    matches_played: int

    @property
    def average_points(self) -> float:
        return self.total_points / self.matches_played if self.matches_played else 0.0


@dataclass(frozen=True)
class TournamentBreakdown:
    """One player's totals within a single tournament."""
    tournament_id: int
    tournament_name: str
    start_date: Optional[date]
    points: float
    matches: int
    wins: int


@dataclass(frozen=True)
class PlayerProfile:
    """Complete player profile data."""
    player_id: int
    name: str
    external_id: Optional[int]
    total_points: float
    matches_played: int
    wins: int
    rank: int
    tournaments: List[TournamentBreakdown]

    @property
    def win_rate(self) -> float:
        return self.wins / self.matches_played if self.matches_played else 0.0

    @property
    def average_points(self) -> float:
        return self.total_points / self.matches_played if self.matches_played else 0.0
