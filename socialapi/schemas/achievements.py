from datetime import datetime
from typing import Any, Dict, List

from socialapi.schemas.common import CamelModel


class AchievementDefinition(CamelModel):
    """업적 카탈로그 항목"""

    id: int
    key: str
    name: str
    description: str
    icon: str
    category: str
    points_reward: int
    requirement: Dict[str, Any]


class AchievementSummary(CamelModel):
    """지급 응답에 포함되는 해제 업적 요약"""

    id: int
    key: str
    name: str
    points_reward: int


class UnlockedAchievement(AchievementDefinition):
    unlocked_at: datetime


class UserAchievementsResponse(CamelModel):
    user_id: str
    unlocked: List[UnlockedAchievement]
    locked: List[AchievementDefinition]
    total_unlocked: int
    total_available: int
