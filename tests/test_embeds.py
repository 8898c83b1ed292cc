# tests/test_embeds.py

import discord
import pytest

from stats_bot.data_models.match_result import MatchIngestResult
from stats_bot.utils.embeds import build_ingestion_embed, format_points


@pytest.mark.parametrize('points, expected', [
    (0, '0'),
    (4.0, '4'),
    (10.0, '10'),
    (3.5, '3.5'),
    (2.25, '2.25'),
    (1.005001, '1.01'),
    (0.1 + 0.2, '0.3'),
    (-0.0001, '0'),
])
def test_format_points(points, expected):
    assert format_points(points) == expected


def test_ingestion_embed_lists_every_match():
    results = [
        MatchIngestResult(100, True, players_count=10),
        MatchIngestResult(101, True, players_count=10, skipped=True),
        MatchIngestResult(102, False, error='Failed to fetch match 102: HTTP 404'),
    ]
    embed = build_ingestion_embed(results, 'Autumn Cup', 3)

    assert embed.title.endswith('Autumn Cup, Day 3')
    assert embed.description == '2/3 matches succeeded'
    assert embed.color == discord.Color.orange()
    body = '\n'.join(field.value for field in embed.fields)
    assert '`100`: 10 players' in body
    assert '`101`: already parsed' in body
    assert 'HTTP 404' in body


def test_ingestion_embed_all_failed():
    embed = build_ingestion_embed([MatchIngestResult(7, False, error='boom')], 'Cup', 1)
    assert embed.color == discord.Color.red()
