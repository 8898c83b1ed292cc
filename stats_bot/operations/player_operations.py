"""
Player Operations Module

Business logic for reconciling players parsed from match pages with
persisted Player records.

Key functionality:
- get_or_create_player(): parsed result -> Player id (lookup, create, backfill)
- prune_orphaned_players(): remove players that no longer have any stat rows

Matching is deliberately loose: a player is found by exact name OR by
platform id, so matches parsed before the platform id was known still join
onto the same Player once the id shows up.
"""

from typing import List, Optional
from contextlib import asynccontextmanager
from sqlalchemy import select, delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stats_bot.data_models.match_result import PlayerResult
from stats_bot.database.models import Player, PlayerMatchStat
from stats_bot.utils.ingestion_errors import PersistenceFailedError
from stats_bot.utils.logger import setup_logger

logger = setup_logger(__name__)


class PlayerOperationError(Exception):
    """Base exception for player operation errors"""
    pass


class PlayerValidationError(PlayerOperationError):
    """Raised when player data validation fails"""
    pass


class PlayerOperations:
    """Business logic operations for Player identity and lifecycle."""

    def __init__(self, database):
        """Initialize with database instance"""
        self.db = database
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

    async def find_player(self, result: PlayerResult, session: AsyncSession) -> Optional[Player]:
        """
        Look up a player by exact name or platform id.

        When the name and the platform id point at two different players the
        platform id wins.
        """
        conditions = [Player.name == result.name]
        if result.external_id is not None:
            conditions.append(Player.external_id == result.external_id)

        rows = (await session.execute(
            select(Player).where(or_(*conditions)).order_by(Player.id)
        )).scalars().all()

        if not rows:
            return None
        if len(rows) > 1:
            self.logger.warning(
                f"Player '{result.name}' (external id {result.external_id}) matches "
                f"{len(rows)} players; preferring the external id match"
            )
            for row in rows:
                if result.external_id is not None and row.external_id == result.external_id:
                    return row
        return rows[0]

    async def get_or_create_player(
        self,
        result: PlayerResult,
        session: Optional[AsyncSession] = None
    ) -> int:
        """
        Resolve a parsed player to a persisted Player id.

        - Found with no platform id while the result carries one: backfill it
        - Not found: create with zero totals

        Args:
            result: Normalized player result from a parsed match
            session: Optional session; when given the caller handles commit

        Returns:
            The Player id

        Raises:
            PlayerValidationError: If the result has no usable name
            PersistenceFailedError: If the lookup or write is rejected
        """
        if not result.name or not result.name.strip():
            raise PlayerValidationError("Player name must not be empty")

        async with self._get_session_context(session) as s:
            try:
                player = await self.find_player(result, s)

                if player:
                    if player.external_id is None and result.external_id is not None:
                        player.external_id = result.external_id
                        await s.flush()
                        self.logger.info(
                            f"Backfilled external id {result.external_id} for player {player.id} ({player.name})"
                        )
                    else:
                        self.logger.debug(f"Found existing player {player.name} with ID {player.id}")
                    return player.id

                player = Player(
                    name=result.name,
                    external_id=result.external_id,
                    total_points=0.0,
                    matches_played=0
                )
                s.add(player)
                await s.flush()
                self.logger.info(
                    f"Created player {player.name} with external id {result.external_id} and ID {player.id}"
                )
                return player.id

            except SQLAlchemyError as e:
                self.logger.error(f"Error resolving player {result.name}: {e}")
                raise PersistenceFailedError(f"player {result.name}", str(e))

    async def prune_orphaned_players(self, session: Optional[AsyncSession] = None) -> List[int]:
        """
        Delete players that have no stat rows left.

        One set-difference query instead of a per-player scan.

        Returns:
            IDs of deleted players
        """
        async with self._get_session_context(session) as s:
            orphan_ids = (await s.execute(
                select(Player.id).where(
                    ~select(PlayerMatchStat.id)
                    .where(PlayerMatchStat.player_id == Player.id)
                    .exists()
                )
            )).scalars().all()

            if orphan_ids:
                await s.execute(delete(Player).where(Player.id.in_(orphan_ids)))
                self.logger.info(f"Pruned {len(orphan_ids)} orphaned players")
            return list(orphan_ids)
