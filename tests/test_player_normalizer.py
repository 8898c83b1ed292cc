# tests/test_player_normalizer.py

import pytest

from stats_bot.utils.player_normalizer import (
    PlainRole, StructuredRole, compute_victory, is_mafia_role,
    normalize_players, parse_role, resolve_role_name
)

from helpers import MATCH_100


class TestVictory:
    """Winner code x faction table."""

    @pytest.mark.parametrize('winner_code, is_mafia, expected', [
        (0, False, True),
        (0, True, False),
        (1, False, False),
        (1, True, True),
        (None, False, False),
        (None, True, False),
        (2, False, False),
        (2, True, False),
    ])
    def test_victory_table(self, winner_code, is_mafia, expected):
        assert compute_victory(winner_code, is_mafia) is expected

    @pytest.mark.parametrize('winner_code', [True, False, '0', '1', 0.0])
    def test_non_integer_codes_mean_no_winner(self, winner_code):
        assert compute_victory(winner_code, False) is False
        assert compute_victory(winner_code, True) is False


class TestRoles:

    def test_plain_and_structured_roles(self):
        assert parse_role({'role': 'don'}) == PlainRole('don')
        assert parse_role({'role': {'type': 'godfather', 'title': 'Godfather'}}) == StructuredRole('godfather')
        assert parse_role({}) is None

    def test_team_is_used_when_role_is_empty(self):
        assert parse_role({'role': '', 'team': 'mafia'}) == PlainRole('mafia')
        assert parse_role({'team': {'type': 'black_mafia'}}) == StructuredRole('black_mafia')

    @pytest.mark.parametrize('role', ['mafia', 'don', 'black_mafia', 'godfather'])
    def test_mafia_faction(self, role):
        assert is_mafia_role(PlainRole(role))
        assert is_mafia_role(StructuredRole(role))

    @pytest.mark.parametrize('role', [PlainRole('civilian'), PlainRole('sheriff'), StructuredRole(None), None])
    def test_everything_else_is_not_mafia(self, role):
        assert not is_mafia_role(role)

    def test_resolve_role_name(self):
        assert resolve_role_name(PlainRole('sheriff')) == 'sheriff'
        assert resolve_role_name(StructuredRole('don')) == 'don'
        assert resolve_role_name(None) is None


class TestNormalizePlayers:

    def test_four_player_scenario(self):
        results = normalize_players({'winnerCode': 0, 'players': MATCH_100})

        assert [r.name for r in results] == ['Alice', 'Boris', 'Clara', 'Dmitri']
        assert [r.points for r in results] == [5.0, 3.0, 2.0, 0.0]
        assert [r.victory for r in results] == [True, False, True, True]
        assert [r.position for r in results] == [1, 2, 3, 4]
        assert [r.external_id for r in results] == [11, 12, 13, 14]

    def test_winner_code_override(self):
        results = normalize_players({'winnerCode': 0, 'players': MATCH_100}, winner_code=1)
        assert [r.victory for r in results] == [False, True, False, False]

    def test_no_winner_declared(self):
        results = normalize_players({'players': MATCH_100})
        assert not any(r.victory for r in results)

    @pytest.mark.parametrize('game_data', [{}, {'players': None}, {'players': 'Alice'}, {'players': {}}])
    def test_missing_players_yield_empty_list(self, game_data):
        assert normalize_players(game_data) == []

    def test_sorted_by_table_position(self):
        players = [
            {'username': 'C', 'tablePosition': 3},
            {'username': 'A', 'tablePosition': 1},
            {'username': 'B', 'tablePosition': 2},
        ]
        assert [r.name for r in normalize_players({'players': players})] == ['A', 'B', 'C']

    def test_players_without_position_keep_order_at_the_end(self):
        players = [
            {'username': 'X'},
            {'username': 'B', 'tablePosition': 2},
            {'username': 'Y'},
            {'username': 'A', 'tablePosition': 1},
        ]
        results = normalize_players({'players': players})

        assert [r.name for r in results] == ['A', 'B', 'X', 'Y']
        # Missing position falls back to the 1-based index
        assert [r.position for r in results] == [1, 2, 3, 4]

    def test_malformed_entries_are_skipped(self):
        players = ['Alice', None, {'points': 3}, {'username': '   '}, {'username': 'Boris', 'points': 1}]
        results = normalize_players({'players': players})
        assert [r.name for r in results] == ['Boris']

    def test_defaults(self):
        results = normalize_players({'players': [{'username': 'Nikita', 'id': 'abc', 'points': None}]})

        assert len(results) == 1
        assert results[0].points == 0.0
        assert results[0].external_id is None
        assert results[0].victory is False

    def test_numeric_strings_are_accepted(self):
        results = normalize_players({'players': [{'username': 'Nikita', 'id': '77', 'points': '2.5'}]})
        assert results[0].external_id == 77
        assert results[0].points == 2.5

    @pytest.mark.parametrize('position', [float('nan'), float('inf'), float('-inf')])
    def test_non_finite_position_falls_back_to_index(self, position):
        players = [{'username': 'A', 'tablePosition': 1}, {'username': 'Z', 'tablePosition': position}]
        results = normalize_players({'players': players})

        assert [(r.name, r.position) for r in results] == [('A', 1), ('Z', 2)]

    @pytest.mark.parametrize('points', [float('nan'), float('inf'), 'NaN', '-Infinity', 10 ** 400])
    def test_non_finite_points_count_as_zero(self, points):
        results = normalize_players({'players': [{'username': 'Z', 'points': points}]})
        assert results[0].points == 0.0

    def test_infinite_id_is_dropped(self):
        results = normalize_players({'players': [{'username': 'Z', 'id': float('inf')}]})
        assert results[0].external_id is None

    def test_is_mafia_flag(self):
        players = [
            {'username': 'A', 'tablePosition': 1, 'isMafia': True},
            {'username': 'B', 'tablePosition': 2, 'role': 'civilian'},
            {'username': 'C', 'tablePosition': 3, 'role': 'don', 'isMafia': False},
        ]
        results = normalize_players({'winnerCode': 1, 'players': players})
        assert [r.victory for r in results] == [True, False, True]
