"""
Shared embed utilities for the stats bot.

Provides reusable embed building functions so admin and public cogs render
ingestion reports, standings and profiles the same way.
"""

import discord
from typing import List

from stats_bot.config import Config
from stats_bot.data_models.match_result import MatchIngestResult
from stats_bot.data_models.standings import (
    GameDayStandings, LeaderboardEntry, PlayerProfile, StandingEntry, TournamentStandings
)

MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}


def format_points(points: float) -> str:
    """Round to two decimals and drop trailing zeros (``3.50`` -> ``3.5``, ``4.0`` -> ``4``)."""
    formatted = f"{round(points or 0.0, 2):.2f}".rstrip('0').rstrip('.')
    return formatted if formatted not in ('', '-0') else '0'


def _rank_label(rank: int) -> str:
    return MEDALS.get(rank, f"**{rank}.**")


def _standing_lines(entries: List[StandingEntry], show_position: bool = False) -> List[str]:
    lines = []
    for entry in entries[:Config.STANDINGS_MAX_ROWS]:
        line = (
            f"{_rank_label(entry.rank)} {discord.utils.escape_markdown(entry.name)}: "
            f"**{format_points(entry.points)}** pts, {entry.matches} games, {entry.wins} wins"
        )
        if show_position and entry.best_position is not None:
            line += f", best seat {entry.best_position}"
        lines.append(line)
    return lines


def build_ingestion_embed(results: List[MatchIngestResult], tournament_name: str, day_number: int) -> discord.Embed:
    """Summarize an ingestion batch: one line per match."""
    succeeded = [r for r in results if r.success]
    color = discord.Color.green() if len(succeeded) == len(results) else (
        discord.Color.orange() if succeeded else discord.Color.red()
    )
    embed = discord.Embed(
        title=f"📥 Matches Parsed: {tournament_name}, Day {day_number}",
        description=f"{len(succeeded)}/{len(results)} matches succeeded",
        color=color
    )

    lines = []
    for result in results:
        if not result.success:
            lines.append(f"❌ `{result.match_id}`: {result.error}")
        elif result.skipped:
            lines.append(f"⏭️ `{result.match_id}`: already parsed ({result.players_count} players)")
        else:
            lines.append(f"✅ `{result.match_id}`: {result.players_count} players")

    # Discord caps field values at 1024 characters
    chunk = []
    for line in lines:
        if sum(len(l) + 1 for l in chunk) + len(line) > 1000:
            embed.add_field(name="Results", value="\n".join(chunk), inline=False)
            chunk = []
        chunk.append(line)
    if chunk:
        embed.add_field(name="Results", value="\n".join(chunk), inline=False)
    return embed


def build_tournament_standings_embed(standings: TournamentStandings) -> discord.Embed:
    embed = discord.Embed(
        title=f"🏆 {standings.tournament_name}: Standings",
        color=discord.Color.gold()
    )
    lines = _standing_lines(standings.entries)
    embed.description = "\n".join(lines) if lines else "No results yet."
    embed.set_footer(
        text=f"{standings.game_days} game days • {standings.matches} matches • {len(standings.entries)} players"
    )
    return embed


def build_game_day_standings_embed(standings: GameDayStandings, tournament_name: str) -> discord.Embed:
    embed = discord.Embed(
        title=f"📅 {tournament_name}: Day {standings.day_number}",
        color=discord.Color.blue()
    )
    lines = _standing_lines(standings.entries, show_position=True)
    embed.description = "\n".join(lines) if lines else "No results yet."
    embed.set_footer(text=f"{standings.matches} matches • {len(standings.entries)} players")
    return embed


def build_leaderboard_embed(entries: List[LeaderboardEntry]) -> discord.Embed:
    embed = discord.Embed(title="📊 Overall Leaderboard", color=discord.Color.gold())
    if not entries:
        embed.description = "No players yet."
        return embed

    embed.description = "\n".join(
        f"{_rank_label(e.rank)} {discord.utils.escape_markdown(e.name)}: "
        f"**{format_points(e.total_points)}** pts in {e.matches_played} games "
        f"(avg {format_points(e.average_points)})"
        for e in entries
    )
    return embed


def build_profile_embed(profile: PlayerProfile) -> discord.Embed:
    """
    Build the player profile embed.

    Lists at most STANDINGS_MAX_ROWS tournaments to stay under Discord's
    25-field limit.
    """
    embed_color = discord.Color.gold() if profile.rank == 1 else discord.Color.blue()
    embed = discord.Embed(
        title=f"👤 {discord.utils.escape_markdown(profile.name)}",
        color=embed_color
    )
    embed.add_field(
        name="📊 Totals",
        value=(
            f"**Points:** {format_points(profile.total_points)}\n"
            f"**Games:** {profile.matches_played}\n"
            f"**Average:** {format_points(profile.average_points)}\n"
            f"**Rank:** #{profile.rank}"
        ),
        inline=True
    )
    embed.add_field(
        name="⚔️ Results",
        value=f"**Wins:** {profile.wins}\n**Win Rate:** {profile.win_rate:.1%}",
        inline=True
    )

    for breakdown in profile.tournaments[:Config.STANDINGS_MAX_ROWS - 2]:
        embed.add_field(
            name=breakdown.tournament_name,
            value=(
                f"{format_points(breakdown.points)} pts • {breakdown.matches} games • "
                f"{breakdown.wins} wins"
            ),
            inline=False
        )

    if profile.external_id:
        embed.set_footer(text=f"Platform ID: {profile.external_id}")
    return embed
