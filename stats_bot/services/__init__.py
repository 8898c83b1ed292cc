"""
Services package for the tournament stats bot.
"""

from .base import BaseService
from .match_fetcher import MatchFetcher
from .player_stats_sync import PlayerStatsSyncService
from .standings import StandingsService

__all__ = ['BaseService', 'MatchFetcher', 'PlayerStatsSyncService', 'StandingsService']
