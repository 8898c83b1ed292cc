import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Bot configuration settings"""

    # Discord settings
    DISCORD_TOKEN = os.getenv('DISCORD_TOKEN')
    DISCORD_GUILD_ID = int(os.getenv('DISCORD_GUILD_ID', 0))
    DISCORD_GUILD_IDS = os.getenv('DISCORD_GUILD_IDS', '')  # Comma-separated for multi-guild support
    OWNER_DISCORD_ID = int(os.getenv('OWNER_DISCORD_ID', 0))
    ADMIN_DISCORD_IDS = os.getenv('ADMIN_DISCORD_IDS', '')  # Comma-separated tournament administrators

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///tournament_stats.db')

    # Bot settings
    COMMAND_PREFIX = os.getenv('COMMAND_PREFIX', '!')
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'

    # Match source settings
    MATCH_BASE_URL = os.getenv('MATCH_BASE_URL', 'https://polemicagame.com').rstrip('/')
    FETCH_USER_AGENT = os.getenv(
        'FETCH_USER_AGENT',
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
    )
    FETCH_TIMEOUT_SECONDS = float(os.getenv('FETCH_TIMEOUT_SECONDS', 20))

    # Embedded game-state marker; the terminator is optional (older pages end with :user=)
    GAME_DATA_MARKER = os.getenv('GAME_DATA_MARKER', ':game-data=')
    GAME_DATA_TERMINATOR = os.getenv('GAME_DATA_TERMINATOR') or None

    # Logging settings (empty LOG_DIR disables the file handler)
    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    # Display settings
    LEADERBOARD_DEFAULT_LIMIT = int(os.getenv('LEADERBOARD_DEFAULT_LIMIT', 10))
    STANDINGS_MAX_ROWS = 25

    @classmethod
    def get_guild_ids(cls):
        """Get list of guild IDs for command syncing"""
        if cls.DISCORD_GUILD_IDS:
            try:
                return [int(guild_id.strip()) for guild_id in cls.DISCORD_GUILD_IDS.split(',') if guild_id.strip()]
            except ValueError:
                raise ValueError("DISCORD_GUILD_IDS must be comma-separated integers")
        elif cls.DISCORD_GUILD_ID:
            return [cls.DISCORD_GUILD_ID]
        else:
            # Global sync
            return []

    @classmethod
    def get_admin_ids(cls):
        """Get the set of Discord IDs allowed to run administrative commands"""
        admin_ids = set()
        if cls.ADMIN_DISCORD_IDS:
            try:
                admin_ids = {int(admin_id.strip()) for admin_id in cls.ADMIN_DISCORD_IDS.split(',') if admin_id.strip()}
            except ValueError:
                raise ValueError("ADMIN_DISCORD_IDS must be comma-separated integers")
        if cls.OWNER_DISCORD_ID:
            admin_ids.add(cls.OWNER_DISCORD_ID)
        return admin_ids

    @classmethod
    def validate(cls):
        """Validate that required configuration is present"""
        if not cls.DISCORD_TOKEN:
            raise ValueError("DISCORD_TOKEN is required")
        if not cls.OWNER_DISCORD_ID:
            raise ValueError("OWNER_DISCORD_ID is required")
        if cls.FETCH_TIMEOUT_SECONDS <= 0:
            raise ValueError("FETCH_TIMEOUT_SECONDS must be positive")
        if not cls.GAME_DATA_MARKER:
            raise ValueError("GAME_DATA_MARKER must not be empty")
