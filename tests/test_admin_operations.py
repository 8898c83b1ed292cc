# tests/test_admin_operations.py

from datetime import date

import pytest
from sqlalchemy import select, update

from stats_bot.database.models import GameDay, Match, Player, PlayerMatchStat, Tournament
from stats_bot.operations.admin_operations import (
    AdminOperations, AdminPermissionError, AdminValidationError, is_admin, parse_match_ids
)
from stats_bot.operations.ingestion_operations import IngestionOperations

from helpers import (
    ADMIN_ID, OTHER_ADMIN_ID, STRANGER_ID,
    assert_conserved, create_game_day, default_fetcher, player_totals, run_scenario, stat_row_count
)


async def _ingest(database, game_day_id, tournament_id, match_ids):
    ops = IngestionOperations(database, fetcher=default_fetcher())
    return await ops.ingest_matches(ADMIN_ID, game_day_id, tournament_id, match_ids)


async def _set_points(database, name, total_points):
    async with database.transaction() as session:
        await session.execute(update(Player).where(Player.name == name).values(total_points=total_points))


def test_is_admin():
    assert is_admin(ADMIN_ID)
    assert is_admin(OTHER_ADMIN_ID)
    assert not is_admin(STRANGER_ID)
    assert not is_admin(None)
    assert not is_admin(0)


class TestParseMatchIds:

    def test_comma_separated(self):
        assert parse_match_ids('184201, 184202,184215') == [184201, 184202, 184215]

    def test_newlines_and_junk_are_tolerated(self):
        assert parse_match_ids('100\n101, abc, , -3, 0, 102') == [100, 101, 102]

    @pytest.mark.parametrize('raw', ['', '   ', 'abc, def', None, '0, -1'])
    def test_nothing_valid(self, raw):
        with pytest.raises(AdminValidationError):
            parse_match_ids(raw)


class TestTournamentsAndGameDays:

    def test_create_tournament(self, db_path):
        async def scenario(database):
            ops = AdminOperations(database)
            tournament = await ops.create_tournament(
                ADMIN_ID, '  Autumn Cup ', 'Weekly club games', date(2024, 9, 1), date(2024, 11, 30)
            )
            stored = await database.get_tournament(tournament.id)
            assert stored.name == 'Autumn Cup'
            assert stored.description == 'Weekly club games'
            assert stored.start_date == date(2024, 9, 1)

        run_scenario(db_path, scenario)

    @pytest.mark.parametrize('name, start, end', [
        ('', None, None),
        ('   ', None, None),
        ('Cup', date(2024, 9, 2), date(2024, 9, 1)),
    ])
    def test_create_tournament_validation(self, db_path, name, start, end):
        async def scenario(database):
            with pytest.raises(AdminValidationError):
                await AdminOperations(database).create_tournament(ADMIN_ID, name, start_date=start, end_date=end)
            assert await database.get_all_tournaments() == []

        run_scenario(db_path, scenario)

    def test_unauthorized_create(self, db_path):
        async def scenario(database):
            with pytest.raises(AdminPermissionError):
                await AdminOperations(database).create_tournament(STRANGER_ID, 'Cup')
            assert await database.get_all_tournaments() == []

        run_scenario(db_path, scenario)

    def test_game_day_is_reused(self, db_path):
        async def scenario(database):
            ops = AdminOperations(database)
            tournament = await ops.create_tournament(ADMIN_ID, 'Cup')
            first = await ops.get_or_create_game_day(ADMIN_ID, tournament.id, 1)
            again = await ops.get_or_create_game_day(OTHER_ADMIN_ID, tournament.id, 1)
            second = await ops.get_or_create_game_day(ADMIN_ID, tournament.id, 2)

            assert first.id == again.id
            assert second.id != first.id
            assert [d.day_number for d in await database.get_game_days_with_matches(tournament.id)] == [1, 2]

        run_scenario(db_path, scenario)

    @pytest.mark.parametrize('day_number', [0, -1, True])
    def test_game_day_number_must_be_positive(self, db_path, day_number):
        async def scenario(database):
            ops = AdminOperations(database)
            tournament = await ops.create_tournament(ADMIN_ID, 'Cup')
            with pytest.raises(AdminValidationError):
                await ops.get_or_create_game_day(ADMIN_ID, tournament.id, day_number)

        run_scenario(db_path, scenario)

    def test_game_day_of_unknown_tournament(self, db_path):
        async def scenario(database):
            with pytest.raises(AdminValidationError):
                await AdminOperations(database).get_or_create_game_day(ADMIN_ID, 42, 1)

        run_scenario(db_path, scenario)


class TestDeletion:

    def test_delete_match_is_exact_inverse(self, db_path):
        async def scenario(database):
            tournament_id, game_day_id = await create_game_day(database)
            await _ingest(database, game_day_id, tournament_id, [100])
            before = await player_totals(database)
            await _ingest(database, game_day_id, tournament_id, [101])

            match = await database.get_match_by_external_id(101)
            result = await AdminOperations(database).delete_match(ADMIN_ID, match.id)

            assert result['affected_players'] == 3
            after = await player_totals(database)
            assert {name: after[name] for name in before} == before
            assert after['Eva'] == (0.0, 0)
            assert await database.get_match_by_external_id(101) is None
            assert await stat_row_count(database) == 4
            await assert_conserved(database)

        run_scenario(db_path, scenario)

    def test_delete_game_day_is_exact_inverse(self, db_path):
        async def scenario(database):
            tournament_id, day_one = await create_game_day(database, day_number=1)
            _, day_two = await create_game_day(database, day_number=2, tournament_id=tournament_id)
            await _ingest(database, day_one, tournament_id, [100])
            before = await player_totals(database)
            await _ingest(database, day_two, tournament_id, [101])

            result = await AdminOperations(database).delete_game_day(ADMIN_ID, day_two)

            assert result['matches_deleted'] == 1
            after = await player_totals(database)
            assert {name: after[name] for name in before} == before
            assert await database.get_game_day(day_two) is None
            assert await database.get_game_day(day_one) is not None
            await assert_conserved(database)

        run_scenario(db_path, scenario)

    def test_delete_game_day_with_moved_match(self, db_path):
        async def scenario(database):
            tournament_id, day_one = await create_game_day(database, day_number=1)
            _, day_two = await create_game_day(database, day_number=2, tournament_id=tournament_id)
            await _ingest(database, day_one, tournament_id, [100])
            await _ingest(database, day_two, tournament_id, [100])

            # The match now belongs to day two, so both days' rows go with it
            await AdminOperations(database).delete_game_day(ADMIN_ID, day_two)

            assert await stat_row_count(database) == 0
            assert set(await player_totals(database)).issuperset({'Alice', 'Boris'})
            assert all(totals == (0.0, 0) for totals in (await player_totals(database)).values())

        run_scenario(db_path, scenario)

    def test_reversal_clamps_drifted_totals(self, db_path):
        async def scenario(database):
            tournament_id, game_day_id = await create_game_day(database)
            await _ingest(database, game_day_id, tournament_id, [100])
            await _set_points(database, 'Alice', 1.0)

            match = await database.get_match_by_external_id(100)
            await AdminOperations(database).delete_match(ADMIN_ID, match.id)

            assert (await player_totals(database))['Alice'] == (0.0, 0)

        run_scenario(db_path, scenario)

    def test_delete_tournament_prunes_orphans(self, db_path):
        async def scenario(database):
            spring_id, spring_day = await create_game_day(database, name='Spring Cup')
            summer_id, summer_day = await create_game_day(database, name='Summer Cup')
            await _ingest(database, spring_day, spring_id, [100])
            await _ingest(database, summer_day, summer_id, [101])

            result = await AdminOperations(database).delete_tournament(ADMIN_ID, summer_id)

            assert result['players_pruned'] == 1
            assert result['matches_deleted'] == 1
            totals = await player_totals(database)
            assert 'Eva' not in totals
            assert totals['Alice'] == (5.0, 1)
            assert totals['Boris'] == (3.0, 1)
            await assert_conserved(database)

            async with database.get_session() as session:
                assert (await session.execute(
                    select(GameDay).where(GameDay.tournament_id == summer_id)
                )).first() is None
                assert await session.get(Tournament, summer_id) is None
                assert await session.get(Tournament, spring_id) is not None

        run_scenario(db_path, scenario)

    def test_unknown_targets(self, db_path):
        async def scenario(database):
            ops = AdminOperations(database)
            with pytest.raises(AdminValidationError):
                await ops.delete_match(ADMIN_ID, 12345)
            with pytest.raises(AdminValidationError):
                await ops.delete_game_day(ADMIN_ID, 12345)
            with pytest.raises(AdminValidationError):
                await ops.delete_tournament(ADMIN_ID, 12345)

        run_scenario(db_path, scenario)

    def test_unauthorized_deletions_have_no_side_effects(self, db_path):
        async def scenario(database):
            tournament_id, game_day_id = await create_game_day(database)
            await _ingest(database, game_day_id, tournament_id, [100])
            before = await player_totals(database)
            match = await database.get_match_by_external_id(100)
            ops = AdminOperations(database)

            with pytest.raises(AdminPermissionError):
                await ops.delete_match(STRANGER_ID, match.id)
            with pytest.raises(AdminPermissionError):
                await ops.delete_game_day(STRANGER_ID, game_day_id)
            with pytest.raises(AdminPermissionError):
                await ops.delete_tournament(STRANGER_ID, tournament_id)
            with pytest.raises(AdminPermissionError):
                await ops.recompute_all_totals(STRANGER_ID)

            assert await player_totals(database) == before
            assert await stat_row_count(database) == 4

        run_scenario(db_path, scenario)


class TestRecompute:

    def test_recompute_repairs_drift(self, db_path):
        async def scenario(database):
            tournament_id, game_day_id = await create_game_day(database)
            await _ingest(database, game_day_id, tournament_id, [100, 101])
            await _set_points(database, 'Boris', 42.0)

            result = await AdminOperations(database).recompute_all_totals(ADMIN_ID)

            assert result['players_repaired'] == 1
            assert (await player_totals(database))['Boris'] == (4.0, 2)
            await assert_conserved(database)

            again = await AdminOperations(database).recompute_all_totals(ADMIN_ID)
            assert again['players_repaired'] == 0

        run_scenario(db_path, scenario)
