from enum import Enum
from typing import List, Optional

from socialapi.schemas.common import CamelModel


class LeaderboardPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL = "all"


class LeaderboardEntry(CamelModel):
    rank: int
    user_id: str
    username: str
    image: Optional[str] = None
    points: int
    is_og: bool = False


class RequestingUserRank(CamelModel):
    """요청 사용자의 순위 (기간 내 포인트가 없으면 rank 는 None)"""

    rank: Optional[int] = None
    points: int = 0
    in_entries: bool = False


class LeaderboardResponse(CamelModel):
    period: LeaderboardPeriod
    limit: int
    entries: List[LeaderboardEntry]
    requesting_user: Optional[RequestingUserRank] = None
