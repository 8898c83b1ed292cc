"""
Player Stats Synchronization Service

Keeps each Player's running totals (total_points, matches_played) consistent
with the PlayerMatchStat fact table.

Normal operation only ever adjusts totals incrementally:
- apply_stat() when a new stat row is persisted
- reverse_stats() right before stat rows are deleted

recompute_player_totals() rebuilds totals from the fact table and is only
meant as a repair tool for drift left behind by partial failures.
"""

from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from stats_bot.database.models import Player, PlayerMatchStat
from stats_bot.utils.logger import setup_logger

logger = setup_logger(__name__)


class PlayerStatsSyncService:
    """Service for maintaining player aggregate totals from match stats."""

    async def apply_stat(self, session: AsyncSession, player_id: int, points: float) -> None:
        """
        Add one stat row's contribution to a player's totals.

        Uses a single UPDATE ... SET col = col + :delta so concurrent
        ingestions touching the same player cannot lose an update.

        Args:
            session: Database session (caller handles commit)
            player_id: Player to update
            points: Points of the newly persisted stat row
        """
        result = await session.execute(
            update(Player)
            .where(Player.id == player_id)
            .values(
                total_points=Player.total_points + points,
                matches_played=Player.matches_played + 1
            )
        )
        if result.rowcount == 0:
            logger.error(f"Player {player_id} not found while applying stat ({points} points)")
            return

        logger.debug(f"Applied {points} points to player {player_id}")

    async def collect_contributions(
        self,
        session: AsyncSession,
        stat_filter: ColumnElement
    ) -> Dict[int, Tuple[float, int]]:
        """
        Sum points and count rows per player for the stat rows matching a filter.

        Returns:
            Mapping of player_id -> (points_sum, row_count)
        """
        result = await session.execute(
            select(
                PlayerMatchStat.player_id,
                func.coalesce(func.sum(PlayerMatchStat.points), 0.0),
                func.count(PlayerMatchStat.id)
            )
            .where(stat_filter)
            .group_by(PlayerMatchStat.player_id)
        )
        return {player_id: (float(points), int(count)) for player_id, points, count in result.all()}

    async def reverse_stats(self, session: AsyncSession, stat_filter: ColumnElement) -> int:
        """
        Remove the contribution of the stat rows matching a filter.

        Must be called before those rows are deleted. Totals are clamped at
        zero; the clamp only engages when totals had already drifted.

        Args:
            session: Database session (caller handles commit and the delete)
            stat_filter: SQLAlchemy condition selecting the rows being removed

        Returns:
            Number of players whose totals were adjusted
        """
        contributions = await self.collect_contributions(session, stat_filter)
        if not contributions:
            return 0

        result = await session.execute(
            select(Player)
            .where(Player.id.in_(list(contributions)))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        players = result.scalars().all()

        for player in players:
            points_to_subtract, rows_to_remove = contributions[player.id]
            new_points = (player.total_points or 0.0) - points_to_subtract
            new_matches = (player.matches_played or 0) - rows_to_remove

            if new_points < 0 or new_matches < 0:
                logger.warning(
                    f"Aggregate drift for player {player.id} ({player.name}): "
                    f"points {player.total_points} - {points_to_subtract}, "
                    f"matches {player.matches_played} - {rows_to_remove}; clamping at zero"
                )

            player.total_points = max(0.0, new_points)
            player.matches_played = max(0, new_matches)

        await session.flush()
        logger.info(f"Reversed stats for {len(players)} players")
        return len(players)

    async def recompute_player_totals(
        self,
        session: AsyncSession,
        player_ids: Optional[Iterable[int]] = None
    ) -> List[int]:
        """
        Rebuild totals from the fact table (repair tool for aggregate drift).

        Args:
            session: Database session (caller handles commit)
            player_ids: Players to repair; all players when omitted

        Returns:
            IDs of players whose stored totals were changed
        """
        query = select(Player).execution_options(populate_existing=True)
        if player_ids is not None:
            query = query.where(Player.id.in_(list(player_ids)))
        players = (await session.execute(query)).scalars().all()
        if not players:
            return []

        contributions = await self.collect_contributions(
            session, PlayerMatchStat.player_id.in_([p.id for p in players])
        )

        changed = []
        for player in players:
            points, count = contributions.get(player.id, (0.0, 0))
            if player.total_points != points or player.matches_played != count:
                logger.info(
                    f"Repairing player {player.id} ({player.name}): "
                    f"points {player.total_points} -> {points}, "
                    f"matches {player.matches_played} -> {count}"
                )
                player.total_points = points
                player.matches_played = count
                changed.append(player.id)

        await session.flush()
        logger.info(f"Recomputed totals for {len(players)} players ({len(changed)} repaired)")
        return changed
