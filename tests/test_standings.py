# tests/test_standings.py

import pytest

from stats_bot.services.standings import (
    StandingsService, TournamentNotFoundError, GameDayNotFoundError, PlayerNotFoundError
)

from helpers import ADMIN_ID, create_game_day, default_fetcher, run_scenario
from stats_bot.operations.ingestion_operations import IngestionOperations


async def _two_matches(database):
    tournament_id, game_day_id = await create_game_day(database)
    ops = IngestionOperations(database, fetcher=default_fetcher())
    await ops.ingest_matches(ADMIN_ID, game_day_id, tournament_id, [100, 101])
    return tournament_id, game_day_id


def test_tournament_standings(db_path):
    async def scenario(database):
        tournament_id, _ = await _two_matches(database)
        standings = await StandingsService(database.session_factory).get_tournament_standings(tournament_id)

        assert standings.tournament_name == 'Autumn Cup'
        assert standings.game_days == 1
        assert standings.matches == 2
        assert [(e.rank, e.name, e.points, e.matches, e.wins) for e in standings.entries] == [
            (1, 'Alice', 9.0, 2, 2),
            (2, 'Boris', 4.0, 2, 0),
            # Equal points: more wins first
            (3, 'Clara', 2.0, 1, 1),
            (4, 'Eva', 2.0, 1, 0),
            (5, 'Dmitri', 0.0, 1, 1),
        ]
        assert standings.entries[0].average_points == 4.5

    run_scenario(db_path, scenario)


def test_game_day_standings_track_best_position(db_path):
    async def scenario(database):
        _, game_day_id = await _two_matches(database)
        standings = await StandingsService(database.session_factory).get_game_day_standings(game_day_id)

        assert standings.day_number == 1
        assert standings.matches == 2
        best = {e.name: e.best_position for e in standings.entries}
        assert best == {'Alice': 1, 'Boris': 1, 'Clara': 3, 'Dmitri': 4, 'Eva': 2}

    run_scenario(db_path, scenario)


def test_leaderboard(db_path):
    async def scenario(database):
        await _two_matches(database)
        entries = await StandingsService(database.session_factory).get_leaderboard(3)

        assert [(e.rank, e.name, e.total_points, e.matches_played) for e in entries] == [
            (1, 'Alice', 9.0, 2),
            (2, 'Boris', 4.0, 2),
            (3, 'Clara', 2.0, 1),
        ]

    run_scenario(db_path, scenario)


def test_leaderboard_limit_must_be_positive(db_path):
    async def scenario(database):
        with pytest.raises(ValueError):
            await StandingsService(database.session_factory).get_leaderboard(0)

    run_scenario(db_path, scenario)


def test_player_profile(db_path):
    async def scenario(database):
        tournament_id, _ = await _two_matches(database)
        boris = await database.get_player_by_name('Boris')
        profile = await StandingsService(database.session_factory).get_player_profile(boris.id)

        assert profile.name == 'Boris'
        assert profile.external_id == 12
        assert profile.rank == 2
        assert profile.total_points == 4.0
        assert profile.matches_played == 2
        assert profile.wins == 0
        assert profile.win_rate == 0.0
        assert [(t.tournament_id, t.points, t.matches) for t in profile.tournaments] == [(tournament_id, 4.0, 2)]

    run_scenario(db_path, scenario)


def test_missing_targets(db_path):
    async def scenario(database):
        service = StandingsService(database.session_factory)
        with pytest.raises(TournamentNotFoundError):
            await service.get_tournament_standings(404)
        with pytest.raises(GameDayNotFoundError):
            await service.get_game_day_standings(404)
        with pytest.raises(PlayerNotFoundError):
            await service.get_player_profile(404)

    run_scenario(db_path, scenario)


def test_empty_tournament(db_path):
    async def scenario(database):
        tournament_id, _ = await create_game_day(database)
        standings = await StandingsService(database.session_factory).get_tournament_standings(tournament_id)
        assert standings.entries == []
        assert standings.matches == 0

    run_scenario(db_path, scenario)
