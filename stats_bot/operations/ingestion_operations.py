"""
Ingestion Operations Module

Orchestrates match ingestion for a game day:

    fetch -> extract -> normalize -> reconcile players -> persist stats -> apply totals

Key functionality:
- ingest_request(): wire-level entry point ({gameDayId, tournamentId, matchIds} -> {results})
- ingest_matches(): validated ingestion returning one MatchIngestResult per id
- reparse_all_matches(): refetch every stored match and refresh victory flags

Fetches for a request run concurrently. Persistence then runs match by match,
each match in its own transaction, each player in its own SAVEPOINT so a bad
player row does not take the rest of the match down with it.
"""

from typing import Any, Dict, Iterable, List, Optional, Pattern, Union
from sqlalchemy import select, func
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stats_bot.data_models.match_result import (
    MatchIngestResult, ParsedMatch, PlayerResult, ReparseSummary
)
from stats_bot.database.models import Match, PlayerMatchStat
from stats_bot.operations.admin_operations import ensure_admin
from stats_bot.operations.player_operations import PlayerOperations, PlayerOperationError
from stats_bot.services.match_fetcher import MatchFetcher
from stats_bot.services.player_stats_sync import PlayerStatsSyncService
from stats_bot.utils.game_data import extract_game_data
from stats_bot.utils.ingestion_errors import (
    ExtractionFailedError, IngestionError, IngestionValidationError, PersistenceFailedError
)
from stats_bot.utils.logger import setup_logger
from stats_bot.utils.player_normalizer import normalize_players

logger = setup_logger(__name__)

# Errors confined to a single player row
PLAYER_ERRORS = (IngestionError, PlayerOperationError, IntegrityError, DataError)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class IngestionOperations:
    """Business logic for turning external match pages into player statistics."""

    def __init__(
        self,
        database,
        fetcher: Optional[MatchFetcher] = None,
        stats_sync: Optional[PlayerStatsSyncService] = None,
        player_ops: Optional[PlayerOperations] = None,
        pattern: Optional[Pattern] = None
    ):
        self.db = database
        self.fetcher = fetcher or MatchFetcher()
        self.stats_sync = stats_sync or PlayerStatsSyncService()
        self.player_ops = player_ops or PlayerOperations(database)
        self.pattern = pattern
        self.logger = logger

    # ------------------------------------------------------------------
    # Fetch / parse
    # ------------------------------------------------------------------

    def parse_document(self, match_id: int, html: str) -> ParsedMatch:
        """
        Extract and normalize one match-detail document.

        Raises:
            ExtractionFailedError: If the game data is missing or not valid JSON
        """
        game_data = extract_game_data(html, self.pattern, match_id=match_id)
        winner_code = game_data.get('winnerCode')
        players = normalize_players(game_data, winner_code)
        return ParsedMatch(
            match_id=match_id,
            players=players,
            raw_data=game_data,
            winner_code=winner_code if isinstance(winner_code, int) and not isinstance(winner_code, bool) else None
        )

    async def fetch_and_parse(
        self,
        match_ids: Iterable[int]
    ) -> Dict[int, Union[ParsedMatch, IngestionError]]:
        """
        Fetch all matches concurrently, then parse the ones that arrived.

        A fetch failure is returned as-is; extraction is never attempted for it.
        Any other error while parsing a document fails only that match.
        """
        documents = await self.fetcher.fetch_many(match_ids)

        parsed: Dict[int, Union[ParsedMatch, IngestionError]] = {}
        for match_id, document in documents.items():
            if isinstance(document, IngestionError):
                parsed[match_id] = document
                continue
            try:
                parsed[match_id] = self.parse_document(match_id, document)
            except IngestionError as e:
                self.logger.error(f"Could not parse match {match_id}: {e}")
                parsed[match_id] = e
            except Exception as e:
                self.logger.exception(f"Unexpected error parsing match {match_id}: {e}")
                parsed[match_id] = ExtractionFailedError(ExtractionFailedError.MALFORMED_DATA, match_id)
        return parsed

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest_request(self, admin_discord_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Handle a raw ingestion request.

        Args:
            admin_discord_id: Caller
            payload: ``{"gameDayId": int, "tournamentId": int, "matchIds": [int, ...]}``

        Returns:
            ``{"results": [{"matchId", "success", "error"?, "playersCount"?}, ...]}``

        Raises:
            AdminPermissionError: If the caller is not an administrator
            IngestionValidationError: If the payload is malformed
        """
        ensure_admin(admin_discord_id)

        if not isinstance(payload, dict):
            raise IngestionValidationError("Request body must be an object")

        game_day_id = payload.get('gameDayId')
        tournament_id = payload.get('tournamentId')
        match_ids = payload.get('matchIds')

        if not _is_positive_int(game_day_id):
            raise IngestionValidationError("gameDayId must be a positive integer")
        if not _is_positive_int(tournament_id):
            raise IngestionValidationError("tournamentId must be a positive integer")

        results = await self.ingest_matches(admin_discord_id, game_day_id, tournament_id, match_ids)
        return {'results': [result.as_dict() for result in results]}

    async def ingest_matches(
        self,
        admin_discord_id: int,
        game_day_id: int,
        tournament_id: Optional[int],
        match_ids: List[int]
    ) -> List[MatchIngestResult]:
        """
        Ingest a batch of external matches into a game day.

        Per-match failures are reported in the results and never raised.
        When tournament_id is None the game day's own tournament is used.

        Raises:
            AdminPermissionError: If the caller is not an administrator
            IngestionValidationError: On malformed ids or an unknown game day
        """
        ensure_admin(admin_discord_id)

        if not isinstance(match_ids, list):
            raise IngestionValidationError("matchIds must be a list")
        invalid = [m for m in match_ids if not _is_positive_int(m)]
        if invalid:
            raise IngestionValidationError(f"Invalid match ids: {invalid}")

        game_day = await self.db.get_game_day(game_day_id)
        if not game_day:
            raise IngestionValidationError(f"Game day {game_day_id} not found")
        if tournament_id is None:
            tournament_id = game_day.tournament_id
        elif game_day.tournament_id != tournament_id:
            raise IngestionValidationError(
                f"Game day {game_day_id} does not belong to tournament {tournament_id}"
            )

        if not match_ids:
            return []

        self.logger.info(
            f"Ingesting {len(match_ids)} matches into game day {game_day_id} "
            f"(tournament {tournament_id}) for {admin_discord_id}"
        )

        parsed_matches = await self.fetch_and_parse(match_ids)

        results = []
        for match_id in match_ids:
            parsed = parsed_matches[match_id]
            if isinstance(parsed, IngestionError):
                results.append(MatchIngestResult(match_id, False, error=parsed.user_message))
                continue

            try:
                results.append(await self._persist_match(parsed, game_day_id, tournament_id))
            except (IngestionError, IntegrityError, DataError) as e:
                error = e if isinstance(e, IngestionError) else PersistenceFailedError(f"match {match_id}", str(e))
                self.logger.error(f"Failed to persist match {match_id}: {error}")
                results.append(MatchIngestResult(match_id, False, error=error.user_message))

        succeeded = sum(1 for r in results if r.success)
        self.logger.info(f"Ingestion finished: {succeeded}/{len(results)} matches succeeded")
        return results

    async def _persist_match(self, parsed: ParsedMatch, game_day_id: int, tournament_id: int) -> MatchIngestResult:
        async with self.db.transaction() as session:
            match = (await session.execute(
                select(Match).where(Match.external_match_id == parsed.match_id)
            )).scalar_one_or_none()

            if match:
                existing_rows = await session.scalar(
                    select(func.count(PlayerMatchStat.id)).where(
                        PlayerMatchStat.match_id == match.id,
                        PlayerMatchStat.game_day_id == game_day_id
                    )
                )
                if existing_rows:
                    self.logger.info(
                        f"Match {parsed.match_id} already ingested for game day {game_day_id}, skipping"
                    )
                    return MatchIngestResult(parsed.match_id, True, players_count=existing_rows, skipped=True)

                if match.game_day_id != game_day_id:
                    # Stats recorded under the previous day stay in place
                    self.logger.warning(
                        f"Match {parsed.match_id} moved from game day {match.game_day_id} to {game_day_id}; "
                        f"its players may be counted twice"
                    )
                    match.game_day_id = game_day_id
                    await session.flush()
            else:
                match = Match(
                    external_match_id=parsed.match_id,
                    game_day_id=game_day_id,
                    match_data=parsed.raw_data
                )
                session.add(match)
                await session.flush()

            persisted = 0
            for result in parsed.players:
                try:
                    async with session.begin_nested():
                        await self._add_player_stat(session, result, match.id, game_day_id, tournament_id)
                    persisted += 1
                except PLAYER_ERRORS as e:
                    self.logger.error(f"Skipping player {result.name} in match {parsed.match_id}: {e}")

            self.logger.info(
                f"Match {parsed.match_id}: persisted {persisted}/{len(parsed.players)} players"
            )
            return MatchIngestResult(parsed.match_id, True, players_count=persisted)

    async def _add_player_stat(
        self,
        session: AsyncSession,
        result: PlayerResult,
        match_pk: int,
        game_day_id: int,
        tournament_id: int
    ) -> int:
        """Reconcile the player, insert the stat row and apply it to the totals."""
        player_id = await self.player_ops.get_or_create_player(result, session)
        session.add(PlayerMatchStat(
            player_id=player_id,
            match_id=match_pk,
            game_day_id=game_day_id,
            tournament_id=tournament_id,
            points=result.points,
            position=result.position,
            victory=result.victory
        ))
        await session.flush()
        await self.stats_sync.apply_stat(session, player_id, result.points)
        return player_id

    # ------------------------------------------------------------------
    # Reparse
    # ------------------------------------------------------------------

    async def reparse_all_matches(self, admin_discord_id: int) -> ReparseSummary:
        """
        Refetch every stored match and refresh victory flags.

        Existing stat rows only get their victory flag rewritten; totals are
        untouched. A stat row missing for a player is inserted and applied
        once. A game day that fails is logged and skipped.

        Raises:
            AdminPermissionError: If the caller is not an administrator
        """
        ensure_admin(admin_discord_id)

        processed = 0
        failed = 0
        for tournament in await self.db.get_all_tournaments():
            for game_day in await self.db.get_game_days_with_matches(tournament.id):
                if not game_day.matches:
                    continue
                try:
                    parsed_matches = await self.fetch_and_parse(
                        [m.external_match_id for m in game_day.matches]
                    )
                    for match in game_day.matches:
                        parsed = parsed_matches[match.external_match_id]
                        if isinstance(parsed, IngestionError):
                            self.logger.warning(f"Reparse skipped match {match.external_match_id}: {parsed}")
                            failed += 1
                            continue
                        await self._reparse_match(match.id, parsed, game_day.id, tournament.id)
                        processed += 1
                except (IngestionError, IntegrityError, DataError) as e:
                    self.logger.error(
                        f"Reparse failed for game day {game_day.id} (tournament {tournament.id}): {e}"
                    )
                    continue

        message = f"Reparsed {processed} matches"
        if failed:
            message += f" ({failed} failed)"
        self.logger.info(f"{message}, requested by {admin_discord_id}")
        return ReparseSummary(True, message, matches_processed=processed, matches_failed=failed)

    async def _reparse_match(self, match_pk: int, parsed: ParsedMatch, game_day_id: int, tournament_id: int) -> int:
        """Refresh one match's stored payload and victory flags. Returns rows changed."""
        async with self.db.transaction() as session:
            match = await session.get(Match, match_pk)
            if not match:
                return 0
            match.match_data = parsed.raw_data
            await session.flush()

            changed = 0
            for result in parsed.players:
                try:
                    async with session.begin_nested():
                        player_id = await self.player_ops.get_or_create_player(result, session)
                        stat = (await session.execute(
                            select(PlayerMatchStat).where(
                                PlayerMatchStat.player_id == player_id,
                                PlayerMatchStat.match_id == match_pk,
                                PlayerMatchStat.game_day_id == game_day_id
                            )
                        )).scalar_one_or_none()

                        if stat is None:
                            session.add(PlayerMatchStat(
                                player_id=player_id,
                                match_id=match_pk,
                                game_day_id=game_day_id,
                                tournament_id=tournament_id,
                                points=result.points,
                                position=result.position,
                                victory=result.victory
                            ))
                            await session.flush()
                            await self.stats_sync.apply_stat(session, player_id, result.points)
                            changed += 1
                        elif stat.victory != result.victory:
                            stat.victory = result.victory
                            changed += 1
                except PLAYER_ERRORS as e:
                    self.logger.error(f"Reparse skipped player {result.name} in match {parsed.match_id}: {e}")

            self.logger.debug(f"Reparsed match {parsed.match_id}: {changed} rows changed")
            return changed
