"""
포인트 액션 정의

모든 포인트 지급 유형(PointActionType)과 유형별 규칙(POINT_ACTIONS)을 한 곳에서 관리합니다.
POINT_ACTIONS 는 PointActionType 의 모든 멤버를 빠짐없이 포함해야 합니다.

중복 방지 범위(DedupScope):
- NONE: 중복 키 없음 (일일 한도만 적용)
- ONCE: 사용자당 1회
- DAILY: 사용자당 UTC 하루 1회
- KEYED: metadata 의 지정 필드 값 기준으로 1회
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class PointActionType(str, Enum):
    PROFILE_CREATION = "PROFILE_CREATION"
    DAILY_LOGIN = "DAILY_LOGIN"
    STREAK_BONUS = "STREAK_BONUS"
    COMMENT_CREATED = "COMMENT_CREATED"
    LIKE_GIVEN = "LIKE_GIVEN"
    LIKE_RECEIVED = "LIKE_RECEIVED"
    FOLLOW_USER = "FOLLOW_USER"
    TRADE_COMPLETED = "TRADE_COMPLETED"
    TRADE_VOLUME_MILESTONE = "TRADE_VOLUME_MILESTONE"
    REFERRAL_BONUS = "REFERRAL_BONUS"
    REFERRAL_SIGNUP = "REFERRAL_SIGNUP"
    PROFILE_UPDATE = "PROFILE_UPDATE"
    PORTFOLIO_VIEW = "PORTFOLIO_VIEW"
    ACHIEVEMENT_UNLOCKED = "ACHIEVEMENT_UNLOCKED"
    ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"


class DedupScope(str, Enum):
    NONE = "none"
    ONCE = "once"
    DAILY = "daily"
    KEYED = "keyed"


@dataclass(frozen=True)
class PointActionRule:
    points: int
    description: str
    scope: DedupScope = DedupScope.NONE
    daily_limit: Optional[int] = None
    dedup_fields: Tuple[str, ...] = ()
    # KEYED 인데 필드가 없을 때: True 면 400, False 면 중복 검사 없이 지급
    dedup_required: bool = True
    # 내부 전용 (공개 지급 API 로는 요청 불가)
    internal: bool = False


POINT_ACTIONS: Dict[PointActionType, PointActionRule] = {
    PointActionType.PROFILE_CREATION: PointActionRule(
        100, "Profile created", scope=DedupScope.ONCE
    ),
    PointActionType.DAILY_LOGIN: PointActionRule(
        10, "Daily login", scope=DedupScope.DAILY
    ),
    PointActionType.STREAK_BONUS: PointActionRule(
        20, "Login streak bonus", scope=DedupScope.DAILY, internal=True
    ),
    PointActionType.COMMENT_CREATED: PointActionRule(
        5,
        "Comment posted",
        scope=DedupScope.KEYED,
        daily_limit=20,
        dedup_fields=("commentId",),
    ),
    PointActionType.LIKE_GIVEN: PointActionRule(
        2,
        "Liked a comment",
        scope=DedupScope.KEYED,
        daily_limit=50,
        dedup_fields=("commentId",),
    ),
    PointActionType.LIKE_RECEIVED: PointActionRule(
        1,
        "Comment received a like",
        scope=DedupScope.KEYED,
        daily_limit=100,
        dedup_fields=("commentId", "likedBy"),
    ),
    PointActionType.FOLLOW_USER: PointActionRule(
        3,
        "Followed a user",
        scope=DedupScope.KEYED,
        daily_limit=25,
        dedup_fields=("followingId",),
    ),
    PointActionType.TRADE_COMPLETED: PointActionRule(
        25,
        "Trade completed",
        scope=DedupScope.KEYED,
        daily_limit=100,
        dedup_fields=("transactionSignature",),
        dedup_required=False,
    ),
    PointActionType.TRADE_VOLUME_MILESTONE: PointActionRule(
        100,
        "Trading volume milestone reached",
        scope=DedupScope.KEYED,
        dedup_fields=("milestone",),
    ),
    PointActionType.REFERRAL_BONUS: PointActionRule(
        500,
        "Referred a new user",
        scope=DedupScope.KEYED,
        dedup_fields=("referredUserId",),
    ),
    PointActionType.REFERRAL_SIGNUP: PointActionRule(
        250, "Signed up with a referral code", scope=DedupScope.ONCE
    ),
    PointActionType.PROFILE_UPDATE: PointActionRule(
        10, "Profile updated", daily_limit=5
    ),
    PointActionType.PORTFOLIO_VIEW: PointActionRule(
        1, "Viewed portfolio", scope=DedupScope.DAILY
    ),
    PointActionType.ACHIEVEMENT_UNLOCKED: PointActionRule(
        0,
        "Achievement unlocked",
        scope=DedupScope.KEYED,
        dedup_fields=("achievementId",),
        internal=True,
    ),
    PointActionType.ADMIN_ADJUSTMENT: PointActionRule(
        0,
        "Admin adjustment",
        scope=DedupScope.KEYED,
        dedup_fields=("refId",),
        internal=True,
    ),
}

# 연속 로그인 일수 → 보너스 배수 (해당 일수 이상이면 적용)
STREAK_MULTIPLIERS: Dict[int, float] = {
    7: 1.5,
    14: 2.0,
    30: 2.5,
    60: 3.0,
    100: 4.0,
}


class MissingDedupFieldError(ValueError):
    def __init__(self, action_type: PointActionType, field: str):
        self.action_type = action_type
        self.field = field
        super().__init__(f"metadata.{field} is required for {action_type.value}")


def parse_action_type(value: Any) -> Optional[PointActionType]:
    """문자열을 PointActionType 으로 변환 (알 수 없는 값이면 None)"""
    if isinstance(value, PointActionType):
        return value
    try:
        return PointActionType(str(value))
    except ValueError:
        return None


def get_streak_multiplier(streak: int) -> float:
    for threshold in sorted(STREAK_MULTIPLIERS, reverse=True):
        if streak >= threshold:
            return STREAK_MULTIPLIERS[threshold]
    return 1.0


def streak_bonus_points(streak: int) -> int:
    multiplier = get_streak_multiplier(streak)
    if multiplier <= 1:
        return 0
    return int(POINT_ACTIONS[PointActionType.STREAK_BONUS].points * (multiplier - 1))


def build_dedup_key(
    action_type: PointActionType,
    user_id: str,
    metadata: Optional[Mapping[str, Any]],
    day: str,
) -> Optional[str]:
    """
    액션 규칙에 따라 dedup_key 생성

    Args:
        action_type: 포인트 액션 유형
        user_id: 지급 대상 사용자
        metadata: 요청 메타데이터
        day: UTC 기준 날짜 문자열 (YYYY-MM-DD)

    Returns:
        Optional[str]: 중복 방지 키, 검사 대상이 아니면 None

    Raises:
        MissingDedupFieldError: 필수 키 필드가 metadata 에 없을 때
    """
    rule = POINT_ACTIONS[action_type]
    prefix = f"{action_type.value}:{user_id}"

    if rule.scope == DedupScope.ONCE:
        return prefix
    if rule.scope == DedupScope.DAILY:
        return f"{prefix}:{day}"
    if rule.scope == DedupScope.KEYED:
        metadata = metadata or {}
        values = []
        for field in rule.dedup_fields:
            value = metadata.get(field)
            if value is None or value == "":
                if rule.dedup_required:
                    raise MissingDedupFieldError(action_type, field)
                return None
            values.append(str(value))
        return f"{prefix}:{':'.join(values)}"
    return None
