import discord
from discord.ext import commands
from discord import app_commands
from datetime import datetime, date
from typing import Optional

from stats_bot.operations.admin_operations import (
    AdminOperations, AdminOperationError, AdminPermissionError, AdminValidationError,
    is_admin, parse_match_ids
)
from stats_bot.operations.ingestion_operations import IngestionOperations
from stats_bot.utils.embeds import build_ingestion_embed
from stats_bot.utils.error_embeds import ErrorEmbeds
from stats_bot.utils.ingestion_errors import IngestionError
from stats_bot.utils.logger import setup_logger

logger = setup_logger(__name__)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise AdminValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")


class AdminCog(commands.Cog):
    """Admin-only commands for tournaments, game days and match ingestion"""

    def __init__(self, bot):
        self.bot = bot
        self.admin_ops = AdminOperations(bot.db)
        self.ingestion_ops = IngestionOperations(bot.db)
        self.logger = logger

    def cog_check(self, ctx):
        """Check if user is a tournament administrator"""
        return is_admin(ctx.author.id)

    class DeleteConfirmationView(discord.ui.View):
        """Confirmation view for destructive deletions"""

        def __init__(self, admin_discord_id: int, target: str):
            super().__init__(timeout=30.0)
            self.admin_discord_id = admin_discord_id
            self.target = target
            self.confirmed = False

        @discord.ui.button(label="✅ Confirm Delete", style=discord.ButtonStyle.danger, emoji="⚠️")
        async def confirm_delete(self, interaction: discord.Interaction, button: discord.ui.Button):
            if interaction.user.id != self.admin_discord_id:
                await interaction.response.send_message("❌ Only the command author can confirm this action.", ephemeral=True)
                return

            self.confirmed = True
            self.stop()

            for child in self.children:
                child.disabled = True

            await interaction.response.edit_message(
                embed=discord.Embed(
                    title="🔄 Deleting...",
                    description=f"Deleting {self.target}...",
                    color=discord.Color.orange()
                ),
                view=self
            )

        @discord.ui.button(label="❌ Cancel", style=discord.ButtonStyle.secondary)
        async def cancel_delete(self, interaction: discord.Interaction, button: discord.ui.Button):
            if interaction.user.id != self.admin_discord_id:
                await interaction.response.send_message("❌ Only the command author can cancel this action.", ephemeral=True)
                return

            self.stop()

            await interaction.response.edit_message(
                embed=discord.Embed(
                    title="❌ Deletion Cancelled",
                    description="Operation cancelled by admin.",
                    color=discord.Color.red()
                ),
                view=None
            )

        async def on_timeout(self):
            """Handle timeout - disable buttons"""
            for child in self.children:
                child.disabled = True

    async def _confirm(self, ctx, title: str, target: str, warning: str) -> bool:
        embed = discord.Embed(title=title, description=warning, color=discord.Color.orange())
        embed.set_footer(text="Click ✅ to confirm or ❌ to cancel • Times out in 30 seconds")
        view = self.DeleteConfirmationView(ctx.author.id, target)
        await ctx.send(embed=embed, view=view)
        await view.wait()
        if not view.confirmed:
            self.logger.info(f"{target} deletion not confirmed by {ctx.author.id}")
        return view.confirmed

    @commands.hybrid_command(name='dbstats')
    async def database_stats(self, ctx):
        """Show database statistics (Admin only)"""
        try:
            counts = await self.bot.db.get_table_counts()

            embed = discord.Embed(
                title="📊 Database Statistics",
                color=discord.Color.blue()
            )
            embed.add_field(name="Tournaments", value=counts['tournaments'], inline=True)
            embed.add_field(name="Game Days", value=counts['game_days'], inline=True)
            embed.add_field(name="Matches", value=counts['matches'], inline=True)
            embed.add_field(name="Players", value=counts['players'], inline=True)
            embed.add_field(name="Stat Rows", value=counts['player_match_stats'], inline=True)

            await ctx.send(embed=embed)

        except Exception as e:
            self.logger.error(f"Error getting database stats: {e}")
            await ctx.send(embed=ErrorEmbeds.database_error())

    @commands.hybrid_command(name='admin-create-tournament', description="Create a new tournament")
    @app_commands.describe(
        name="Tournament name",
        start_date="Optional start date (YYYY-MM-DD)",
        end_date="Optional end date (YYYY-MM-DD)",
        description="Optional description"
    )
    async def create_tournament(self, ctx, name: str, start_date: Optional[str] = None,
                                end_date: Optional[str] = None, *, description: Optional[str] = None):
        """
        Create a tournament.

        Usage:
        !admin-create-tournament "Autumn Cup" 2024-09-01 2024-11-30 Weekly club games
        """
        try:
            tournament = await self.admin_ops.create_tournament(
                admin_discord_id=ctx.author.id,
                name=name,
                description=description,
                start_date=_parse_date(start_date),
                end_date=_parse_date(end_date)
            )

            embed = discord.Embed(
                title="✅ Tournament Created",
                color=discord.Color.green()
            )
            embed.add_field(name="ID", value=tournament.id, inline=True)
            embed.add_field(name="Name", value=tournament.name, inline=True)
            if tournament.start_date:
                embed.add_field(name="Dates", value=f"{tournament.start_date} → {tournament.end_date or '?'}", inline=True)
            if tournament.description:
                embed.add_field(name="Description", value=tournament.description, inline=False)
            await ctx.send(embed=embed)

        except AdminValidationError as e:
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(e)))
        except AdminPermissionError:
            await ctx.send(embed=ErrorEmbeds.admin_required())
        except AdminOperationError as e:
            await ctx.send(embed=ErrorEmbeds.command_error(str(e)))

    @commands.hybrid_command(name='admin-parse-matches', description="Parse external matches into a game day")
    @app_commands.describe(
        tournament_id="Tournament ID",
        day_number="Game day number (created on first use)",
        match_ids="Comma-separated external match IDs"
    )
    async def parse_matches(self, ctx, tournament_id: int, day_number: int, *, match_ids: str):
        """
        Fetch and parse external matches into a tournament game day.

        Usage:
        !admin-parse-matches 1 3 184201, 184202, 184215
        """
        try:
            if ctx.interaction:
                await ctx.defer()

            ids = parse_match_ids(match_ids)
            game_day = await self.admin_ops.get_or_create_game_day(
                admin_discord_id=ctx.author.id,
                tournament_id=tournament_id,
                day_number=day_number
            )
            tournament = await self.bot.db.get_tournament(tournament_id)

            results = await self.ingestion_ops.ingest_matches(
                admin_discord_id=ctx.author.id,
                game_day_id=game_day.id,
                tournament_id=tournament_id,
                match_ids=ids
            )
            await ctx.send(embed=build_ingestion_embed(results, tournament.name, day_number))

        except AdminPermissionError:
            await ctx.send(embed=ErrorEmbeds.admin_required())
        except (AdminValidationError, IngestionError) as e:
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(e)))
        except Exception as e:
            self.logger.error(f"Match parsing failed: {e}", exc_info=True)
            await ctx.send(embed=ErrorEmbeds.command_error("Match parsing failed"))

    @commands.hybrid_command(name='admin-reparse-matches', description="Refetch all matches and refresh victory flags")
    async def reparse_matches(self, ctx):
        """Refetch every stored match and refresh victory flags (Admin only)"""
        try:
            if ctx.interaction:
                await ctx.defer()

            summary = await self.ingestion_ops.reparse_all_matches(ctx.author.id)

            embed = discord.Embed(
                title="🔁 Reparse Complete" if summary.success else "❌ Reparse Failed",
                description=summary.message,
                color=discord.Color.green() if not summary.matches_failed else discord.Color.orange()
            )
            await ctx.send(embed=embed)

        except AdminPermissionError:
            await ctx.send(embed=ErrorEmbeds.admin_required())
        except Exception as e:
            self.logger.error(f"Reparse failed: {e}", exc_info=True)
            await ctx.send(embed=ErrorEmbeds.command_error("Reparse failed"))

    @commands.hybrid_command(name='admin-delete-match', description="Delete a parsed match and reverse its points")
    @app_commands.describe(match_id="External match ID")
    async def delete_match(self, ctx, match_id: int):
        """Delete one parsed match by its external ID (Admin only)"""
        try:
            match = await self.bot.db.get_match_by_external_id(match_id)
            if not match:
                await ctx.send(embed=ErrorEmbeds.not_found("Match", match_id))
                return

            result = await self.admin_ops.delete_match(ctx.author.id, match.id)

            embed = discord.Embed(
                title="🗑️ Match Deleted",
                description=f"Match `{result['external_match_id']}` removed; "
                            f"{result['affected_players']} players adjusted.",
                color=discord.Color.green()
            )
            await ctx.send(embed=embed)

        except AdminPermissionError:
            await ctx.send(embed=ErrorEmbeds.admin_required())
        except AdminValidationError as e:
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(e)))
        except AdminOperationError as e:
            await ctx.send(embed=ErrorEmbeds.command_error(str(e)))

    @commands.hybrid_command(name='admin-delete-gameday', description="Delete a game day and reverse its points")
    @app_commands.describe(tournament_id="Tournament ID", day_number="Game day number")
    async def delete_game_day(self, ctx, tournament_id: int, day_number: int):
        """Delete a game day with all of its matches (Admin only)"""
        try:
            game_day = await self.bot.db.get_game_day_by_number(tournament_id, day_number)
            if not game_day:
                await ctx.send(embed=ErrorEmbeds.not_found("Game Day", f"{tournament_id}/{day_number}"))
                return

            confirmed = await self._confirm(
                ctx,
                "⚠️ Confirm Game Day Deletion",
                f"game day {day_number}",
                f"Day {day_number} of tournament {tournament_id} and all of its matches will be deleted. "
                f"Player totals will be reduced accordingly."
            )
            if not confirmed:
                return

            result = await self.admin_ops.delete_game_day(ctx.author.id, game_day.id)

            embed = discord.Embed(
                title="🗑️ Game Day Deleted",
                description=f"{result['matches_deleted']} matches removed; "
                            f"{result['affected_players']} players adjusted.",
                color=discord.Color.green()
            )
            await ctx.send(embed=embed)

        except AdminPermissionError:
            await ctx.send(embed=ErrorEmbeds.admin_required())
        except AdminValidationError as e:
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(e)))
        except AdminOperationError as e:
            await ctx.send(embed=ErrorEmbeds.command_error(str(e)))

    @commands.hybrid_command(name='admin-delete-tournament', description="Delete a tournament with everything in it")
    @app_commands.describe(tournament_id="Tournament ID")
    async def delete_tournament(self, ctx, tournament_id: int):
        """Delete a tournament, its game days, matches and stats (Admin only)"""
        try:
            tournament = await self.bot.db.get_tournament(tournament_id)
            if not tournament:
                await ctx.send(embed=ErrorEmbeds.not_found("Tournament", tournament_id))
                return

            confirmed = await self._confirm(
                ctx,
                "⚠️ Confirm Tournament Deletion",
                f"tournament '{tournament.name}'",
                f"**{tournament.name}** with all game days, matches and stats will be deleted. "
                f"Players left without any games are removed. This cannot be undone!"
            )
            if not confirmed:
                return

            result = await self.admin_ops.delete_tournament(ctx.author.id, tournament_id)

            embed = discord.Embed(
                title="🗑️ Tournament Deleted",
                color=discord.Color.green()
            )
            embed.add_field(name="Matches", value=result['matches_deleted'], inline=True)
            embed.add_field(name="Stat Rows", value=result['stats_deleted'], inline=True)
            embed.add_field(name="Players Removed", value=result['players_pruned'], inline=True)
            await ctx.send(embed=embed)

        except AdminPermissionError:
            await ctx.send(embed=ErrorEmbeds.admin_required())
        except AdminValidationError as e:
            await ctx.send(embed=ErrorEmbeds.invalid_input(str(e)))
        except AdminOperationError as e:
            await ctx.send(embed=ErrorEmbeds.command_error(str(e)))

    @commands.hybrid_command(name='admin-recompute-totals', description="Rebuild player totals from match stats")
    async def recompute_totals(self, ctx):
        """Repair player totals from the stat rows (Admin only)"""
        try:
            result = await self.admin_ops.recompute_all_totals(ctx.author.id)
            embed = discord.Embed(
                title="🔧 Totals Recomputed",
                description=f"{result['players_repaired']} players repaired.",
                color=discord.Color.green()
            )
            await ctx.send(embed=embed)

        except AdminPermissionError:
            await ctx.send(embed=ErrorEmbeds.admin_required())
        except Exception as e:
            self.logger.error(f"Recompute failed: {e}", exc_info=True)
            await ctx.send(embed=ErrorEmbeds.command_error("Recompute failed"))


async def setup(bot):
    await bot.add_cog(AdminCog(bot))
