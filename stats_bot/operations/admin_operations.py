"""
Administrative Operations Module

Business logic for tournament administration: creating tournaments and game
days, deleting matches, game days and tournaments (with aggregate reversal),
and the aggregate repair tool.

Key functionality:
- ensure_admin(): caller authorization shared by every admin-only operation
- create_tournament() / get_or_create_game_day()
- delete_match() / delete_game_day(): reverse player totals, then delete
- delete_tournament(): delete everything below it and prune orphaned players
- recompute_all_totals(): rebuild player totals from match stats

Every operation checks the caller before touching the database, so an
unauthorized call has no side effects.
"""

from datetime import date
from typing import Optional, List, Dict, Any
from contextlib import asynccontextmanager
from sqlalchemy import select, delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stats_bot.config import Config
from stats_bot.database.models import Tournament, GameDay, Match, PlayerMatchStat
from stats_bot.operations.player_operations import PlayerOperations
from stats_bot.services.player_stats_sync import PlayerStatsSyncService
from stats_bot.utils.logger import setup_logger

logger = setup_logger(__name__)


class AdminOperationError(Exception):
    """Base exception for admin operation errors"""
    pass


class AdminPermissionError(AdminOperationError):
    """Raised when the caller is not an authorized administrator"""
    pass


class AdminValidationError(AdminOperationError):
    """Raised when admin operation validation fails"""
    pass


def is_admin(discord_id: Optional[int]) -> bool:
    """Owner and configured administrators are authorized."""
    if not discord_id:
        return False
    return discord_id in Config.get_admin_ids()


def ensure_admin(discord_id: Optional[int]) -> None:
    if not is_admin(discord_id):
        logger.info(f"Unauthorized administrative request from {discord_id}")
        raise AdminPermissionError(f"User {discord_id} is not authorized")


def parse_match_ids(raw: str) -> List[int]:
    """
    Parse a comma-separated list of external match ids.

    Entries that are not positive integers are dropped.

    Raises:
        AdminValidationError: If no valid id remains
    """
    match_ids = []
    for chunk in (raw or "").replace('\n', ',').split(','):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            match_id = int(chunk)
        except ValueError:
            logger.debug(f"Ignoring invalid match id '{chunk}'")
            continue
        if match_id > 0:
            match_ids.append(match_id)

    if not match_ids:
        raise AdminValidationError("No valid match IDs provided")
    return match_ids


class AdminOperations:
    """
    Business logic operations for tournament administration.
    """

    def __init__(self, database, stats_sync: Optional[PlayerStatsSyncService] = None,
                 player_ops: Optional[PlayerOperations] = None):
        """Initialize with database instance"""
        self.db = database
        self.stats_sync = stats_sync or PlayerStatsSyncService()
        self.player_ops = player_ops or PlayerOperations(database)
        self.logger = logger

    @asynccontextmanager
    async def _get_session_context(self, session: Optional[AsyncSession] = None):
        """
        Provides a session context. Uses the provided session if available,
        otherwise creates and manages a new transaction.
        """
        if session:
            # If a session is provided, we do not manage its lifecycle
            yield session
        else:
            async with self.db.transaction() as new_session:
                yield new_session

    async def create_tournament(
        self,
        admin_discord_id: int,
        name: str,
        description: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        session: Optional[AsyncSession] = None
    ) -> Tournament:
        """
        Create a tournament.

        Raises:
            AdminPermissionError: If the caller is not an administrator
            AdminValidationError: If the name is empty or the dates are inverted
        """
        ensure_admin(admin_discord_id)

        name = (name or "").strip()
        if not name:
            raise AdminValidationError("Tournament name is required")
        if start_date and end_date and end_date < start_date:
            raise AdminValidationError("Tournament end date must not be before its start date")

        async with self._get_session_context(session) as s:
            tournament = Tournament(
                name=name,
                description=(description or "").strip() or None,
                start_date=start_date,
                end_date=end_date
            )
            s.add(tournament)
            await s.flush()
            self.logger.info(f"Tournament {tournament.id} '{name}' created by {admin_discord_id}")
            return tournament

    async def get_or_create_game_day(
        self,
        admin_discord_id: int,
        tournament_id: int,
        day_number: int,
        session: Optional[AsyncSession] = None
    ) -> GameDay:
        """
        Return the game day for (tournament, day number), creating it on first use.

        Raises:
            AdminPermissionError: If the caller is not an administrator
            AdminValidationError: If the tournament is unknown or day_number < 1
        """
        ensure_admin(admin_discord_id)

        if isinstance(day_number, bool) or not isinstance(day_number, int) or day_number < 1:
            raise AdminValidationError("Day number must be a positive integer")

        async with self._get_session_context(session) as s:
            tournament = await s.get(Tournament, tournament_id)
            if not tournament:
                raise AdminValidationError(f"Tournament {tournament_id} not found")

            result = await s.execute(
                select(GameDay).where(
                    GameDay.tournament_id == tournament_id,
                    GameDay.day_number == day_number
                )
            )
            game_day = result.scalar_one_or_none()
            if game_day:
                self.logger.debug(f"Using existing game day {game_day.id} (tournament {tournament_id}, day {day_number})")
                return game_day

            game_day = GameDay(tournament_id=tournament_id, day_number=day_number)
            try:
                async with s.begin_nested():
                    s.add(game_day)
            except IntegrityError:
                # Created concurrently by another request
                result = await s.execute(
                    select(GameDay).where(
                        GameDay.tournament_id == tournament_id,
                        GameDay.day_number == day_number
                    )
                )
                return result.scalar_one()

            self.logger.info(f"Created game day {game_day.id} (tournament {tournament_id}, day {day_number})")
            return game_day

    async def delete_match(
        self,
        admin_discord_id: int,
        match_id: int,
        session: Optional[AsyncSession] = None
    ) -> Dict[str, Any]:
        """
        Delete one match by internal id, reversing its contribution to player totals.

        Returns:
            Dictionary with the deleted match and affected player count
        """
        ensure_admin(admin_discord_id)

        async with self._get_session_context(session) as s:
            try:
                match = await s.get(Match, match_id)
                if not match:
                    raise AdminValidationError(f"Match {match_id} not found")

                stat_filter = PlayerMatchStat.match_id == match.id
                affected_players = await self.stats_sync.reverse_stats(s, stat_filter)

                await s.execute(delete(PlayerMatchStat).where(stat_filter))
                await s.execute(delete(Match).where(Match.id == match.id))

                self.logger.info(
                    f"Match {match.external_match_id} (id {match.id}) deleted by {admin_discord_id}; "
                    f"{affected_players} players adjusted"
                )
                return {
                    'success': True,
                    'match_id': match.id,
                    'external_match_id': match.external_match_id,
                    'affected_players': affected_players
                }

            except (AdminPermissionError, AdminValidationError):
                raise
            except Exception as e:
                self.logger.error(f"Match deletion failed: {e}")
                raise AdminOperationError(f"Match deletion failed: {e}")

    async def delete_game_day(
        self,
        admin_discord_id: int,
        game_day_id: int,
        session: Optional[AsyncSession] = None
    ) -> Dict[str, Any]:
        """
        Delete a game day with its matches, reversing player totals first.

        Stat rows removed are those recorded for this day plus any row of a
        match that currently belongs to this day (deleting the match removes
        them all).
        """
        ensure_admin(admin_discord_id)

        async with self._get_session_context(session) as s:
            try:
                game_day = await s.get(GameDay, game_day_id)
                if not game_day:
                    raise AdminValidationError(f"Game day {game_day_id} not found")

                match_ids = (await s.execute(
                    select(Match.id).where(Match.game_day_id == game_day.id)
                )).scalars().all()

                stat_filter = or_(
                    PlayerMatchStat.game_day_id == game_day.id,
                    PlayerMatchStat.match_id.in_(match_ids)
                )
                affected_players = await self.stats_sync.reverse_stats(s, stat_filter)

                await s.execute(delete(PlayerMatchStat).where(stat_filter))
                await s.execute(delete(Match).where(Match.game_day_id == game_day.id))
                await s.execute(delete(GameDay).where(GameDay.id == game_day.id))

                self.logger.info(
                    f"Game day {game_day.id} (tournament {game_day.tournament_id}, day {game_day.day_number}) "
                    f"deleted by {admin_discord_id}: {len(match_ids)} matches, {affected_players} players adjusted"
                )
                return {
                    'success': True,
                    'game_day_id': game_day.id,
                    'matches_deleted': len(match_ids),
                    'affected_players': affected_players
                }

            except (AdminPermissionError, AdminValidationError):
                raise
            except Exception as e:
                self.logger.error(f"Game day deletion failed: {e}")
                raise AdminOperationError(f"Game day deletion failed: {e}")

    async def delete_tournament(
        self,
        admin_discord_id: int,
        tournament_id: int,
        session: Optional[AsyncSession] = None
    ) -> Dict[str, Any]:
        """
        Delete a tournament with all of its game days, matches and stats,
        then prune players left without any stat rows.

        Player totals are reversed first so players who also played in other
        tournaments keep totals that match their remaining stat rows.
        """
        ensure_admin(admin_discord_id)

        async with self._get_session_context(session) as s:
            try:
                tournament = await s.get(Tournament, tournament_id)
                if not tournament:
                    raise AdminValidationError(f"Tournament {tournament_id} not found")

                game_day_ids = select(GameDay.id).where(GameDay.tournament_id == tournament.id)
                match_ids = select(Match.id).where(Match.game_day_id.in_(game_day_ids))

                stat_filter = or_(
                    PlayerMatchStat.tournament_id == tournament.id,
                    PlayerMatchStat.match_id.in_(match_ids)
                )
                affected_players = await self.stats_sync.reverse_stats(s, stat_filter)

                stats_result = await s.execute(
                    delete(PlayerMatchStat).where(stat_filter)
                    .execution_options(synchronize_session=False)
                )
                matches_result = await s.execute(
                    delete(Match).where(Match.game_day_id.in_(game_day_ids))
                    .execution_options(synchronize_session=False)
                )
                await s.execute(
                    delete(GameDay).where(GameDay.tournament_id == tournament.id)
                    .execution_options(synchronize_session=False)
                )
                await s.execute(delete(Tournament).where(Tournament.id == tournament.id))

                pruned = await self.player_ops.prune_orphaned_players(s)

                self.logger.info(
                    f"Tournament {tournament.id} '{tournament.name}' deleted by {admin_discord_id}: "
                    f"{stats_result.rowcount} stat rows, {matches_result.rowcount} matches, "
                    f"{affected_players} players adjusted, "
                    f"{len(pruned)} orphaned players pruned"
                )
                return {
                    'success': True,
                    'tournament_id': tournament.id,
                    'stats_deleted': stats_result.rowcount,
                    'matches_deleted': matches_result.rowcount,
                    'affected_players': affected_players,
                    'players_pruned': len(pruned)
                }

            except (AdminPermissionError, AdminValidationError):
                raise
            except Exception as e:
                self.logger.error(f"Tournament deletion failed: {e}")
                raise AdminOperationError(f"Tournament deletion failed: {e}")

    async def recompute_all_totals(
        self,
        admin_discord_id: int,
        session: Optional[AsyncSession] = None
    ) -> Dict[str, Any]:
        """Rebuild every player's totals from the stat rows (drift repair)."""
        ensure_admin(admin_discord_id)

        async with self._get_session_context(session) as s:
            repaired = await self.stats_sync.recompute_player_totals(s)
            self.logger.info(f"Totals recomputed by {admin_discord_id}: {len(repaired)} players repaired")
            return {'success': True, 'players_repaired': len(repaired), 'player_ids': repaired}
