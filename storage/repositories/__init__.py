"""Repository classes for database operations."""

from .base import BaseRepository
from .auth_repository import AuthRepository
from .daily_stats_repository import DailyStatsRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "AuthRepository",
    "DailyStatsRepository",
    "UserRepository",
]
