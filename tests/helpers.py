# tests/helpers.py

import asyncio
import json
import os
from typing import Dict, Optional

from sqlalchemy import select, func

from stats_bot.database.database import Database
from stats_bot.database.models import Player, PlayerMatchStat
from stats_bot.operations.admin_operations import AdminOperations
from stats_bot.utils.ingestion_errors import FetchFailedError

ADMIN_ID = 1001
OTHER_ADMIN_ID = 1002
STRANGER_ID = 999


def fixture_path(filename: str) -> str:
    return os.path.join(os.path.dirname(__file__), 'fixtures', filename)


def load_fixture(filename: str) -> str:
    with open(fixture_path(filename), 'r', encoding='utf-8') as f:
        return f.read()


def player(player_id, username, points, position, role):
    return {'id': player_id, 'username': username, 'points': points, 'tablePosition': position, 'role': role}


def make_page(players, winner_code=0) -> str:
    """Render a minimal match page embedding the game data the way the platform does."""
    game_data = {'winnerCode': winner_code, 'players': players}
    return (
        '<html><body><div id="app">'
        f"<match-view :game-data='{json.dumps(game_data)}' :user='null'></match-view>"
        '</div></body></html>'
    )


# Match 100: points [5, 3, 2, 0], roles [civilian, mafia, civilian, sheriff], civilians win
MATCH_100 = [
    player(11, 'Alice', 5, 1, 'civilian'),
    player(12, 'Boris', 3, 2, {'type': 'mafia'}),
    player(13, 'Clara', 2, 3, 'civilian'),
    player(14, 'Dmitri', 0, 4, {'type': 'sheriff'}),
]

# Match 101: mafia wins, Alice is the don
MATCH_101 = [
    player(12, 'Boris', 1, 1, 'civilian'),
    player(15, 'Eva', 2, 2, 'sheriff'),
    player(11, 'Alice', 4, 3, {'type': 'don'}),
]


class FakeFetcher:
    """Stands in for MatchFetcher: serves pages from memory, 404 for anything unknown."""

    def __init__(self, pages: Optional[Dict[int, str]] = None, statuses: Optional[Dict[int, int]] = None):
        self.pages = dict(pages or {})
        self.statuses = dict(statuses or {})
        self.requested = []

    async def fetch_many(self, match_ids):
        match_ids = list(dict.fromkeys(match_ids))
        self.requested.extend(match_ids)
        documents = {}
        for match_id in match_ids:
            if match_id in self.pages:
                documents[match_id] = self.pages[match_id]
            else:
                documents[match_id] = FetchFailedError(match_id, self.statuses.get(match_id, 404))
        return documents


def default_fetcher() -> FakeFetcher:
    return FakeFetcher({100: make_page(MATCH_100, 0), 101: make_page(MATCH_101, 1)})


def run_scenario(db_path, scenario):
    """Run an async scenario against a fresh SQLite file database."""
    async def _run():
        database = Database(f"sqlite:///{db_path}")
        await database.initialize()
        try:
            return await scenario(database)
        finally:
            await database.close()

    return asyncio.run(_run())


async def create_game_day(database, name='Autumn Cup', day_number=1, tournament_id=None):
    """Create (or reuse) a tournament and one of its game days. Returns (tournament_id, game_day_id)."""
    admin_ops = AdminOperations(database)
    if tournament_id is None:
        tournament = await admin_ops.create_tournament(ADMIN_ID, name)
        tournament_id = tournament.id
    game_day = await admin_ops.get_or_create_game_day(ADMIN_ID, tournament_id, day_number)
    return tournament_id, game_day.id


async def player_totals(database) -> Dict[str, tuple]:
    """name -> (total_points, matches_played) from the running totals"""
    async with database.get_session() as session:
        result = await session.execute(select(Player))
        return {p.name: (p.total_points, p.matches_played) for p in result.scalars()}


async def fact_totals(database) -> Dict[str, tuple]:
    """name -> (sum(points), count(rows)) from the stat rows; players without rows get (0.0, 0)"""
    async with database.get_session() as session:
        result = await session.execute(
            select(
                Player.name,
                func.coalesce(func.sum(PlayerMatchStat.points), 0.0),
                func.count(PlayerMatchStat.id)
            )
            .outerjoin(PlayerMatchStat, PlayerMatchStat.player_id == Player.id)
            .group_by(Player.name)
        )
        return {name: (float(points), count) for name, points, count in result.all()}


async def stat_row_count(database) -> int:
    async with database.get_session() as session:
        return await session.scalar(select(func.count(PlayerMatchStat.id)))


async def assert_conserved(database):
    assert await player_totals(database) == await fact_totals(database)
