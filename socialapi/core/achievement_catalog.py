"""
기본 업적 카탈로그

requirement 형식 (type 별):
- action_count: {"action": PointActionType, "count": int}
- streak: {"days": int}
- referrals: {"count": int}
- total_points: {"points": int}
- trading_volume: {"usd": float}
- follows: {"count": int}
"""

from enum import Enum
from typing import Any, Dict, List


class AchievementCategory(str, Enum):
    MILESTONE = "MILESTONE"
    SOCIAL = "SOCIAL"
    TRADING = "TRADING"
    ENGAGEMENT = "ENGAGEMENT"
    REFERRAL = "REFERRAL"


DEFAULT_ACHIEVEMENTS: List[Dict[str, Any]] = [
    {
        "key": "first_steps",
        "name": "First Steps",
        "description": "Create your profile",
        "icon": "🎯",
        "category": AchievementCategory.MILESTONE.value,
        "points_reward": 50,
        "requirement": {"type": "action_count", "action": "PROFILE_CREATION", "count": 1},
    },
    {
        "key": "social_butterfly",
        "name": "Social Butterfly",
        "description": "Follow 10 users",
        "icon": "🦋",
        "category": AchievementCategory.SOCIAL.value,
        "points_reward": 100,
        "requirement": {"type": "follows", "count": 10},
    },
    {
        "key": "conversation_starter",
        "name": "Conversation Starter",
        "description": "Post 25 comments",
        "icon": "💬",
        "category": AchievementCategory.ENGAGEMENT.value,
        "points_reward": 150,
        "requirement": {"type": "action_count", "action": "COMMENT_CREATED", "count": 25},
    },
    {
        "key": "trader",
        "name": "Trader",
        "description": "Complete 10 trades",
        "icon": "📈",
        "category": AchievementCategory.TRADING.value,
        "points_reward": 250,
        "requirement": {"type": "action_count", "action": "TRADE_COMPLETED", "count": 10},
    },
    {
        "key": "day_trader",
        "name": "Day Trader",
        "description": "Complete 50 trades",
        "icon": "🚀",
        "category": AchievementCategory.TRADING.value,
        "points_reward": 500,
        "requirement": {"type": "action_count", "action": "TRADE_COMPLETED", "count": 50},
    },
    {
        "key": "whale",
        "name": "Whale",
        "description": "Complete 100 trades",
        "icon": "🐋",
        "category": AchievementCategory.TRADING.value,
        "points_reward": 1000,
        "requirement": {"type": "action_count", "action": "TRADE_COMPLETED", "count": 100},
    },
    {
        "key": "high_roller",
        "name": "High Roller",
        "description": "Reach $10,000 in cumulative trading volume",
        "icon": "🏦",
        "category": AchievementCategory.TRADING.value,
        "points_reward": 500,
        "requirement": {"type": "trading_volume", "usd": 10_000},
    },
    {
        "key": "loyal_user",
        "name": "Loyal User",
        "description": "Log in 7 days in a row",
        "icon": "🔥",
        "category": AchievementCategory.ENGAGEMENT.value,
        "points_reward": 200,
        "requirement": {"type": "streak", "days": 7},
    },
    {
        "key": "dedicated_user",
        "name": "Dedicated User",
        "description": "Log in 30 days in a row",
        "icon": "💎",
        "category": AchievementCategory.ENGAGEMENT.value,
        "points_reward": 750,
        "requirement": {"type": "streak", "days": 30},
    },
    {
        "key": "referral_champion",
        "name": "Referral Champion",
        "description": "Refer 5 users",
        "icon": "👑",
        "category": AchievementCategory.REFERRAL.value,
        "points_reward": 1000,
        "requirement": {"type": "referrals", "count": 5},
    },
    {
        "key": "millionaire",
        "name": "Millionaire",
        "description": "Earn 1,000,000 points",
        "icon": "💰",
        "category": AchievementCategory.MILESTONE.value,
        "points_reward": 10000,
        "requirement": {"type": "total_points", "points": 1_000_000},
    },
]
