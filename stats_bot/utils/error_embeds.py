"""
Centralized error embeds for consistent error handling across the stats bot.

Provides standardized error messages and formatting to maintain consistency
and improve user experience when errors occur.
"""

import discord


class ErrorEmbeds:
    """Centralized error embed factory for consistent error handling."""

    @staticmethod
    def admin_required() -> discord.Embed:
        """Create embed for administrative commands used by non-administrators."""
        embed = discord.Embed(
            title="❌ Administrative Privileges Required",
            description="This command is restricted to tournament administrators only.",
            color=discord.Color.red()
        )
        embed.set_footer(text="Contact the bot owner if you believe you should have access.")
        return embed

    @staticmethod
    def not_found(what: str, identifier) -> discord.Embed:
        """Create embed for a missing tournament, game day, match or player."""
        return discord.Embed(
            title=f"{what} Not Found",
            description=f"{what} `{identifier}` could not be found.",
            color=discord.Color.red()
        )

    @staticmethod
    def invalid_input(message: str) -> discord.Embed:
        """Create embed for invalid user input."""
        return discord.Embed(
            title="Invalid Input",
            description=message,
            color=discord.Color.red()
        )

    @staticmethod
    def command_error(error: str) -> discord.Embed:
        """Create embed for general command errors."""
        return discord.Embed(
            title="Command Error",
            description=f"An error occurred: {error}\n\nPlease try again or contact an administrator.",
            color=discord.Color.red()
        )

    @staticmethod
    def database_error() -> discord.Embed:
        """Create embed for database-related errors."""
        return discord.Embed(
            title="Database Error",
            description="A database error occurred. Please try again later or contact an administrator.",
            color=discord.Color.red()
        )
