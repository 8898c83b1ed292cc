import discord
from discord.ext import commands
from discord import app_commands
from typing import Optional

from stats_bot.config import Config
from stats_bot.services.standings import (
    StandingsService, TournamentNotFoundError, GameDayNotFoundError, PlayerNotFoundError
)
from stats_bot.utils.embeds import (
    build_game_day_standings_embed, build_leaderboard_embed,
    build_profile_embed, build_tournament_standings_embed
)
from stats_bot.utils.error_embeds import ErrorEmbeds
from stats_bot.utils.logger import setup_logger

logger = setup_logger(__name__)


class TournamentCog(commands.Cog):
    """Tournament standings and player statistics commands"""

    def __init__(self, bot):
        self.bot = bot
        self.standings = StandingsService(bot.db.session_factory)

    @commands.hybrid_command(name='tournaments')
    async def list_tournaments(self, ctx):
        """View all tournaments"""
        try:
            tournaments = await self.bot.db.get_all_tournaments()

            if not tournaments:
                embed = discord.Embed(
                    title="Tournaments",
                    description="No tournaments yet.",
                    color=discord.Color.orange()
                )
                await ctx.send(embed=embed)
                return

            embed = discord.Embed(title="Tournaments", color=discord.Color.blue())

            tournament_list = []
            for tournament in tournaments:
                days = len(tournament.game_days) if tournament.game_days else 0
                dates = f" ({tournament.start_date} → {tournament.end_date or '?'})" if tournament.start_date else ""
                tournament_list.append(f"**{tournament.id}.** {tournament.name}{dates}: {days} game days")

            if len(tournament_list) <= 20:
                embed.description = "\n".join(tournament_list)
            else:
                embed.description = "\n".join(tournament_list[:20])
                embed.add_field(
                    name="Note",
                    value=f"Showing first 20 of {len(tournament_list)} tournaments",
                    inline=False
                )

            await ctx.send(embed=embed)

        except Exception as e:
            logger.error(f"Error listing tournaments: {e}")
            await ctx.send(embed=ErrorEmbeds.database_error())

    @commands.hybrid_command(name='standings')
    @app_commands.describe(tournament_id="Tournament ID (see /tournaments)")
    async def tournament_standings(self, ctx, tournament_id: int):
        """View final standings of a tournament"""
        try:
            standings = await self.standings.get_tournament_standings(tournament_id)
            await ctx.send(embed=build_tournament_standings_embed(standings))
        except TournamentNotFoundError:
            await ctx.send(embed=ErrorEmbeds.not_found("Tournament", tournament_id))
        except Exception as e:
            logger.error(f"Error building standings for tournament {tournament_id}: {e}")
            await ctx.send(embed=ErrorEmbeds.database_error())

    @commands.hybrid_command(name='gameday-standings')
    @app_commands.describe(tournament_id="Tournament ID", day_number="Game day number")
    async def game_day_standings(self, ctx, tournament_id: int, day_number: int):
        """View standings of a single game day"""
        try:
            game_day = await self.bot.db.get_game_day_by_number(tournament_id, day_number)
            if not game_day:
                raise GameDayNotFoundError(f"Game day {tournament_id}/{day_number} not found")

            tournament = await self.bot.db.get_tournament(tournament_id)
            standings = await self.standings.get_game_day_standings(game_day.id)
            await ctx.send(embed=build_game_day_standings_embed(standings, tournament.name))
        except GameDayNotFoundError:
            await ctx.send(embed=ErrorEmbeds.not_found("Game Day", f"{tournament_id}/{day_number}"))
        except Exception as e:
            logger.error(f"Error building standings for game day {tournament_id}/{day_number}: {e}")
            await ctx.send(embed=ErrorEmbeds.database_error())

    @commands.hybrid_command(name='leaderboard')
    @app_commands.describe(limit="Number of players to show")
    async def leaderboard(self, ctx, limit: Optional[int] = None):
        """View the overall points leaderboard"""
        limit = limit or Config.LEADERBOARD_DEFAULT_LIMIT
        if limit < 1 or limit > Config.STANDINGS_MAX_ROWS:
            await ctx.send(embed=ErrorEmbeds.invalid_input(
                f"Limit must be between 1 and {Config.STANDINGS_MAX_ROWS}"
            ))
            return

        try:
            entries = await self.standings.get_leaderboard(limit)
            await ctx.send(embed=build_leaderboard_embed(entries))
        except Exception as e:
            logger.error(f"Error building leaderboard: {e}")
            await ctx.send(embed=ErrorEmbeds.database_error())

    @commands.hybrid_command(name='player')
    @app_commands.describe(name="Player name as shown on the game platform")
    async def player_profile(self, ctx, *, name: str):
        """View a player's totals and tournament history"""
        try:
            player = await self.bot.db.get_player_by_name(name.strip())
            if not player:
                raise PlayerNotFoundError(name)

            profile = await self.standings.get_player_profile(player.id)
            await ctx.send(embed=build_profile_embed(profile))
        except PlayerNotFoundError:
            await ctx.send(embed=ErrorEmbeds.not_found("Player", name))
        except Exception as e:
            logger.error(f"Error building profile for {name}: {e}")
            await ctx.send(embed=ErrorEmbeds.database_error())


async def setup(bot):
    await bot.add_cog(TournamentCog(bot))
