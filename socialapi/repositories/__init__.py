# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .points_repository import PendingTransaction, PointsRepository
from .achievement_repository import AchievementRepository
from .social_repository import SocialRepository
from .trade_repository import TradeRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PointsRepository",
    "PendingTransaction",
    "AchievementRepository",
    "SocialRepository",
    "TradeRepository",
]
