"""
OG(얼리 어답터) 자격 평가

규칙은 우선순위 순서로 평가되며 처음 충족된 규칙의 사유가 기록됩니다.
1. 관리자 수동 부여 (이미 OG 이면 재평가하지 않음)
2. 누적 거래량 ≥ OG_MIN_TRADING_VOLUME_USD
3. 해제 업적 수 ≥ OG_MIN_ACHIEVEMENTS
4. 총 포인트 ≥ OG_MIN_POINTS
5. 가입 기간 ≥ OG_MIN_ACCOUNT_AGE_DAYS 이면서 총 포인트 ≥ OG_MIN_VETERAN_POINTS

OG 부여는 `UPDATE ... WHERE is_og = false` 조건부 갱신으로만 이뤄지므로 단방향이며 경합에 안전합니다.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from socialapi.config import Settings
from socialapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from socialapi.repositories.achievement_repository import AchievementRepository
from socialapi.repositories.user_repository import UserRepository
from socialapi.schemas.og import (
    OGCriterionProgress,
    OGProgressResponse,
    OGStatusResponse,
    TradeVolumeUpdateResult,
)
from socialapi.schemas.user import User
from socialapi.utils.date_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

MANUAL_GRANT_REASON = "Manual admin grant"


@dataclass(frozen=True)
class OGContext:
    trading_volume: float
    achievements: int
    total_points: int
    account_age_days: int


@dataclass(frozen=True)
class OGRule:
    name: str
    reason: str
    predicate: Callable[[OGContext, Settings], bool]


OG_RULES: List[OGRule] = [
    OGRule(
        "tradingVolume",
        "High trading volume",
        lambda ctx, s: ctx.trading_volume >= s.OG_MIN_TRADING_VOLUME_USD,
    ),
    OGRule(
        "achievements",
        "Achievement master",
        lambda ctx, s: ctx.achievements >= s.OG_MIN_ACHIEVEMENTS,
    ),
    OGRule(
        "points",
        "High contributor",
        lambda ctx, s: ctx.total_points >= s.OG_MIN_POINTS,
    ),
    OGRule(
        "veteran",
        "Veteran member",
        lambda ctx, s: ctx.account_age_days >= s.OG_MIN_ACCOUNT_AGE_DAYS
        and ctx.total_points >= s.OG_MIN_VETERAN_POINTS,
    ),
]


def validate_trade_volume(trade_volume_usd: Optional[float]) -> Decimal:
    if trade_volume_usd is None or trade_volume_usd <= 0:
        raise ValidationError(
            "tradeVolumeUSD must be greater than 0",
            details={"tradeVolumeUSD": trade_volume_usd},
        )
    return Decimal(str(trade_volume_usd))


def _percentage(current: float, required: float) -> float:
    if required <= 0:
        return 100.0
    return round(min(current / required * 100, 100.0), 2)


class OGService:
    """OG Eligibility Evaluator"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.user_repo = UserRepository(db)
        self.achievement_repo = AchievementRepository(db)

    def _get_user(self, user_id: str) -> User:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"userId": user_id})
        return user

    def _context(self, user: User, now: Optional[datetime] = None) -> OGContext:
        now = now or utcnow()
        created_at = as_utc(user.created_at) or now
        return OGContext(
            trading_volume=float(user.total_trading_volume_usd),
            achievements=self.achievement_repo.count_unlocked(user.privy_did),
            total_points=user.total_points,
            account_age_days=max((now - created_at).days, 0),
        )

    def first_matching_rule(self, ctx: OGContext) -> Optional[OGRule]:
        for rule in OG_RULES:
            if rule.predicate(ctx, self.settings):
                return rule
        return None

    def milestones_crossed(self, previous: Decimal, new_total: Decimal) -> List[int]:
        """previous < milestone <= new_total 인 거래량 마일스톤"""
        return [
            milestone
            for milestone in sorted(self.settings.TRADE_VOLUME_MILESTONES)
            if previous < milestone <= new_total
        ]

    def check_and_grant(self, user_id: str) -> Tuple[bool, Optional[str]]:
        """
        OG 자격 평가 후 조건 충족 시 부여

        Returns:
            Tuple[bool, Optional[str]]: (이번 호출로 부여되었는지, 현재 OG 사유)
        """
        user = self._get_user(user_id)
        if user.is_og:
            return False, user.og_reason

        rule = self.first_matching_rule(self._context(user))
        if rule is None:
            return False, None

        granted = self.user_repo.grant_og_if_not_og(user_id, rule.reason, utcnow())
        if granted:
            logger.info(f"OG granted to user {user_id}: {rule.reason}")
            return True, rule.reason

        # 동시 요청이 먼저 부여한 경우
        current = self._get_user(user_id)
        return False, current.og_reason

    def update_trading_volume_and_check_og(
        self, user_id: str, trade_volume_usd: float
    ) -> TradeVolumeUpdateResult:
        """
        누적 거래량 증가 후 OG 평가

        이미 OG 인 사용자도 거래량은 갱신되지만 OG 사유는 바뀌지 않습니다.

        Raises:
            ValidationError: 거래량이 0 이하일 때
            NotFoundError: 사용자가 없을 때
        """
        amount = validate_trade_volume(trade_volume_usd)

        user = self._get_user(user_id)
        previous = Decimal(str(user.total_trading_volume_usd))
        new_total = self.user_repo.add_trading_volume(user_id, amount)
        milestones = self.milestones_crossed(previous, new_total)

        granted, reason = self.check_and_grant(user_id)
        logger.info(
            f"Trading volume for user {user_id}: {previous} -> {new_total} (ogGranted={granted})"
        )
        return TradeVolumeUpdateResult(
            new_total_volume=float(new_total),
            og_granted=granted,
            og_reason=reason,
            milestones_reached=milestones,
        )

    def get_og_progress(self, user_id: str) -> OGProgressResponse:
        """OG 진행 현황 (상태 변경 없음)"""
        user = self._get_user(user_id)
        ctx = self._context(user)
        s = self.settings

        veteran_pct = min(
            _percentage(ctx.account_age_days, s.OG_MIN_ACCOUNT_AGE_DAYS),
            _percentage(ctx.total_points, s.OG_MIN_VETERAN_POINTS),
        )
        criteria: Dict[str, OGCriterionProgress] = {
            "tradingVolume": OGCriterionProgress(
                current=ctx.trading_volume,
                required=s.OG_MIN_TRADING_VOLUME_USD,
                percentage=_percentage(ctx.trading_volume, s.OG_MIN_TRADING_VOLUME_USD),
                met=ctx.trading_volume >= s.OG_MIN_TRADING_VOLUME_USD,
            ),
            "achievements": OGCriterionProgress(
                current=ctx.achievements,
                required=s.OG_MIN_ACHIEVEMENTS,
                percentage=_percentage(ctx.achievements, s.OG_MIN_ACHIEVEMENTS),
                met=ctx.achievements >= s.OG_MIN_ACHIEVEMENTS,
            ),
            "points": OGCriterionProgress(
                current=ctx.total_points,
                required=s.OG_MIN_POINTS,
                percentage=_percentage(ctx.total_points, s.OG_MIN_POINTS),
                met=ctx.total_points >= s.OG_MIN_POINTS,
            ),
            "veteran": OGCriterionProgress(
                current=ctx.account_age_days,
                required=s.OG_MIN_ACCOUNT_AGE_DAYS,
                percentage=veteran_pct,
                met=veteran_pct >= 100.0,
            ),
        }

        next_threshold = None
        progress = 0.0
        if not user.is_og:
            unmet = [(name, c.percentage) for name, c in criteria.items() if not c.met]
            if unmet:
                next_threshold, progress = max(unmet, key=lambda item: item[1])
            else:
                progress = 100.0

        return OGProgressResponse(
            user_id=user.privy_did,
            is_og=user.is_og,
            og_reason=user.og_reason,
            og_granted_at=user.og_granted_at,
            total_trading_volume_usd=ctx.trading_volume,
            criteria=criteria,
            next_threshold=next_threshold,
            progress_percentage=progress,
        )

    def grant_og_manually(
        self,
        user_id: Optional[str] = None,
        username: Optional[str] = None,
        reason: str = MANUAL_GRANT_REASON,
    ) -> OGStatusResponse:
        """관리자 수동 OG 부여 - 이미 OG 이면 409"""
        user = (
            self.user_repo.get_by_id(user_id)
            if user_id
            else self.user_repo.get_by_username(username or "")
        )
        if user is None:
            raise NotFoundError(
                "User not found", details={"userId": user_id, "username": username}
            )
        if user.is_og:
            raise ConflictError(
                "User already has OG status", details={"ogReason": user.og_reason}
            )

        if not self.user_repo.grant_og_if_not_og(user.privy_did, reason, utcnow()):
            raise ConflictError("User already has OG status")

        logger.info(f"OG manually granted to user {user.privy_did}: {reason}")
        granted = self._get_user(user.privy_did)
        return OGStatusResponse(
            user_id=granted.privy_did,
            is_og=granted.is_og,
            og_reason=granted.og_reason,
            og_granted_at=granted.og_granted_at,
        )
