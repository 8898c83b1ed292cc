"""
Standings service.

Read-only aggregation over the PlayerMatchStat fact table for tournament and
game day standings, plus the overall leaderboard and player profiles, which
read the running totals kept on Player.
"""

import logging
from typing import List
from sqlalchemy import select, func, case

from stats_bot.services.base import BaseService
from stats_bot.data_models.standings import (
    StandingEntry, TournamentStandings, GameDayStandings,
    LeaderboardEntry, TournamentBreakdown, PlayerProfile
)
from stats_bot.database.models import Tournament, GameDay, Match, Player, PlayerMatchStat

logger = logging.getLogger(__name__)


class TournamentNotFoundError(Exception):
    """Raised when a tournament doesn't exist."""
    pass


class GameDayNotFoundError(Exception):
    """Raised when a game day doesn't exist."""
    pass


class PlayerNotFoundError(Exception):
    """Raised when a player doesn't exist."""
    pass


def _standings_columns():
    points = func.coalesce(func.sum(PlayerMatchStat.points), 0.0).label('points')
    matches = func.count(PlayerMatchStat.id).label('matches')
    wins = func.coalesce(func.sum(case((PlayerMatchStat.victory.is_(True), 1), else_=0)), 0).label('wins')
    best_position = func.min(PlayerMatchStat.position).label('best_position')
    return points, matches, wins, best_position


class StandingsService(BaseService):
    """Service for standings and leaderboard queries."""

    async def get_tournament_standings(self, tournament_id: int) -> TournamentStandings:
        """Per-player points, matches and wins across a tournament."""
        async with self.get_session() as session:
            tournament = await session.get(Tournament, tournament_id)
            if not tournament:
                raise TournamentNotFoundError(f"Tournament {tournament_id} not found")

            points, matches, wins, _ = _standings_columns()
            result = await session.execute(
                select(Player.id, Player.name, points, matches, wins)
                .join(Player, Player.id == PlayerMatchStat.player_id)
                .where(PlayerMatchStat.tournament_id == tournament_id)
                .group_by(Player.id, Player.name)
                .order_by(points.desc(), wins.desc(), Player.name)
            )
            entries = [
                StandingEntry(
                    rank=rank,
                    player_id=row.id,
                    name=row.name,
                    points=float(row.points),
                    matches=row.matches,
                    wins=int(row.wins)
                )
                for rank, row in enumerate(result, start=1)
            ]

            game_day_count = await session.scalar(
                select(func.count(GameDay.id)).where(GameDay.tournament_id == tournament_id)
            )
            match_count = await session.scalar(
                select(func.count(Match.id))
                .join(GameDay, Match.game_day_id == GameDay.id)
                .where(GameDay.tournament_id == tournament_id)
            )

            logger.debug(f"Tournament {tournament_id} standings: {len(entries)} players")
            return TournamentStandings(
                tournament_id=tournament.id,
                tournament_name=tournament.name,
                entries=entries,
                game_days=game_day_count or 0,
                matches=match_count or 0
            )

    async def get_game_day_standings(self, game_day_id: int) -> GameDayStandings:
        """Per-player standings for one game day, with each player's best (lowest) table position."""
        async with self.get_session() as session:
            game_day = await session.get(GameDay, game_day_id)
            if not game_day:
                raise GameDayNotFoundError(f"Game day {game_day_id} not found")

            points, matches, wins, best_position = _standings_columns()
            result = await session.execute(
                select(Player.id, Player.name, points, matches, wins, best_position)
                .join(Player, Player.id == PlayerMatchStat.player_id)
                .where(PlayerMatchStat.game_day_id == game_day_id)
                .group_by(Player.id, Player.name)
                .order_by(points.desc(), wins.desc(), Player.name)
            )
            entries = [
                StandingEntry(
                    rank=rank,
                    player_id=row.id,
                    name=row.name,
                    points=float(row.points),
                    matches=row.matches,
                    wins=int(row.wins),
                    best_position=row.best_position
                )
                for rank, row in enumerate(result, start=1)
            ]

            match_count = await session.scalar(
                select(func.count(Match.id)).where(Match.game_day_id == game_day_id)
            )
            return GameDayStandings(
                game_day_id=game_day.id,
                tournament_id=game_day.tournament_id,
                day_number=game_day.day_number,
                entries=entries,
                matches=match_count or 0
            )

    async def get_leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        """Players with at least one match, ordered by running total points."""
        if not isinstance(limit, int) or limit < 1:
            raise ValueError("limit must be a positive integer")

        async with self.get_session() as session:
            result = await session.execute(
                select(Player)
                .where(Player.matches_played > 0)
                .order_by(Player.total_points.desc(), Player.name)
                .limit(limit)
            )
            return [
                LeaderboardEntry(
                    rank=rank,
                    player_id=player.id,
                    name=player.name,
                    total_points=player.total_points or 0.0,
                    matches_played=player.matches_played or 0
                )
                for rank, player in enumerate(result.scalars(), start=1)
            ]

    async def get_player_profile(self, player_id: int) -> PlayerProfile:
        """Totals, wins, overall rank and per-tournament breakdown for one player."""
        async with self.get_session() as session:
            player = await session.get(Player, player_id)
            if not player:
                raise PlayerNotFoundError(f"Player {player_id} not found")

            ahead = await session.scalar(
                select(func.count(Player.id)).where(Player.total_points > (player.total_points or 0.0))
            )

            points, matches, wins, _ = _standings_columns()
            result = await session.execute(
                select(Tournament.id, Tournament.name, Tournament.start_date, points, matches, wins)
                .join(Tournament, Tournament.id == PlayerMatchStat.tournament_id)
                .where(PlayerMatchStat.player_id == player_id)
                .group_by(Tournament.id, Tournament.name, Tournament.start_date)
                .order_by(Tournament.start_date.desc(), Tournament.id.desc())
            )
            tournaments = [
                TournamentBreakdown(
                    tournament_id=row.id,
                    tournament_name=row.name,
                    start_date=row.start_date,
                    points=float(row.points),
                    matches=row.matches,
                    wins=int(row.wins)
                )
                for row in result
            ]

            return PlayerProfile(
                player_id=player.id,
                name=player.name,
                external_id=player.external_id,
                total_points=player.total_points or 0.0,
                matches_played=player.matches_played or 0,
                wins=sum(t.wins for t in tournaments),
                rank=(ahead or 0) + 1,
                tournaments=tournaments
            )
