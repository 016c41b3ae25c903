from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from socialapi.core.point_actions import PointActionType
from socialapi.schemas.achievements import AchievementSummary
from socialapi.schemas.common import CamelModel


class AwardStatus:
    AWARDED = "awarded"
    DUPLICATE = "duplicate"
    LIMIT_REACHED = "limit_reached"


class StreakInfo(CamelModel):
    current_streak: int
    longest_streak: int
    multiplier: float = 1.0
    streak_bonus: int = 0


class AwardPointsRequest(CamelModel):
    """포인트 지급 요청"""

    user_id: str = Field(..., min_length=1, description="사용자 privyDid")
    action_type: PointActionType = Field(..., description="포인트 액션 유형")
    metadata: Optional[Dict[str, Any]] = Field(None, description="감사/중복 방지용 메타데이터")


class AwardPointsResponse(CamelModel):
    """포인트 지급 결과 - 중복/한도 초과도 성공(0 포인트)으로 응답"""

    success: bool = True
    points_awarded: int = Field(..., description="이번 요청으로 지급된 포인트")
    new_total: int = Field(..., description="지급 후 총 포인트")
    status: str = Field(AwardStatus.AWARDED, description="awarded | duplicate | limit_reached")
    message: Optional[str] = None
    achievements_unlocked: List[AchievementSummary] = Field(default_factory=list)
    streak_info: Optional[StreakInfo] = None


class PointTransactionEntry(CamelModel):
    """포인트 거래 내역 항목"""

    id: int
    user_id: str
    points: int
    action_type: str
    description: str
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime


class PointsHistoryResponse(CamelModel):
    transactions: List[PointTransactionEntry]
    total: int
    page: int
    limit: int
    has_next: bool


class UserPointsResponse(CamelModel):
    """사용자 포인트 요약"""

    user_id: str
    username: str
    total_points: int
    today_points: int
    rank: Optional[int] = Field(None, description="전체 기간 순위 (포인트가 없으면 None)")
    current_streak: int
    longest_streak: int
    referral_code: str
    is_og: bool
    og_reason: Optional[str] = None


class PointsIntegrityResponse(CamelModel):
    """포인트 정합성 검증 결과"""

    user_id: str
    total_points: int = Field(..., description="users.total_points")
    ledger_sum: int = Field(..., description="point_transactions 합계")
    difference: int
    transaction_count: int
    status: str = Field(..., description="OK | MISMATCH")


class AdminPointsAdjustmentRequest(CamelModel):
    """관리자 포인트 보정 요청 (음수 가능)"""

    user_id: str = Field(..., min_length=1)
    points: int = Field(..., description="보정 포인트 (0 불가)")
    reason: str = Field(..., min_length=1, max_length=255)
    ref_id: Optional[str] = Field(None, max_length=100, description="멱등성 참조 ID")

    @field_validator("points")
    @classmethod
    def non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("points must not be zero")
        return value


class InitResponse(CamelModel):
    success: bool = True
    message: str
    count: int
