import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from socialapi.config import Settings
from socialapi.core.exceptions import NotFoundError, ValidationError
from socialapi.core.point_actions import (
    POINT_ACTIONS,
    MissingDedupFieldError,
    PointActionType,
    build_dedup_key,
    get_streak_multiplier,
    parse_action_type,
    streak_bonus_points,
)
from socialapi.repositories.points_repository import PendingTransaction, PointsRepository
from socialapi.repositories.user_repository import UserRepository
from socialapi.schemas.achievements import AchievementSummary
from socialapi.schemas.points import (
    AdminPointsAdjustmentRequest,
    AwardPointsResponse,
    AwardStatus,
    PointsHistoryResponse,
    PointsIntegrityResponse,
    StreakInfo,
    UserPointsResponse,
)
from socialapi.schemas.user import User
from socialapi.services.achievement_service import AchievementService
from socialapi.utils.date_utils import utc_day_start, utcnow

logger = logging.getLogger(__name__)


class PointService:
    """포인트 지급/조회 비즈니스 로직 (Points Engine)"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.points_repo = PointsRepository(db)
        self.user_repo = UserRepository(db)
        self.achievement_service = AchievementService(db, point_service=self)

    def award_points(
        self,
        user_id: str,
        action_type: Union[PointActionType, str],
        metadata: Optional[Dict[str, Any]] = None,
        *,
        points: Optional[int] = None,
        description: Optional[str] = None,
        allow_internal: bool = True,
        run_hooks: bool = True,
        commit: bool = True,
    ) -> AwardPointsResponse:
        """포인트 지급

        원장 INSERT 와 total_points 증가는 하나의 커밋으로 처리됩니다.
        중복(dedup_key 충돌)과 일일 한도 초과는 에러가 아닌 0 포인트 결과로 응답합니다.

        Args:
            user_id: 사용자 privyDid
            action_type: 포인트 액션 유형
            metadata: 감사/중복 방지용 메타데이터
            points: 지급 포인트 (업적 보상, 관리자 보정처럼 가변인 경우)
            description: 원장 설명 (기본값: 액션 규칙의 설명)
            allow_internal: False 면 내부 전용 액션 거부 (공개 API)
            run_hooks: 커밋 후 업적/OG 평가 실행 여부
            commit: False 면 호출자가 커밋 (추천 처리처럼 여러 쓰기를 묶을 때)

        Returns:
            AwardPointsResponse: 지급 결과

        Raises:
            ValidationError: 알 수 없는 액션, 내부 전용 액션, 필수 메타데이터 누락
            NotFoundError: 사용자가 없을 때
        """
        action = parse_action_type(action_type)
        if action is None:
            raise ValidationError(
                f"Unknown action type: {action_type}",
                details={"actionType": str(action_type)},
            )

        rule = POINT_ACTIONS[action]
        if rule.internal and not allow_internal:
            raise ValidationError(
                f"Action type {action.value} cannot be awarded directly",
                details={"actionType": action.value},
            )

        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"userId": user_id})

        amount = rule.points if points is None else points
        if amount < 0 and action != PointActionType.ADMIN_ADJUSTMENT:
            raise ValidationError("Points must not be negative for regular awards")

        now = utcnow()
        day_start = utc_day_start(now)
        day = day_start.date().isoformat()

        try:
            dedup_key = build_dedup_key(action, user_id, metadata, day)
        except MissingDedupFieldError as e:
            raise ValidationError(str(e), details={"field": e.field})

        if dedup_key and self.points_repo.dedup_key_exists(dedup_key):
            logger.info(f"Duplicate {action.value} for user {user_id} ({dedup_key})")
            return self._zero_award(user, AwardStatus.DUPLICATE, "Already awarded")

        if rule.daily_limit is not None:
            today_count = self.points_repo.count_actions_since(user_id, action.value, day_start)
            if today_count >= rule.daily_limit:
                logger.info(
                    f"Daily limit reached for {action.value} user {user_id}: {today_count}/{rule.daily_limit}"
                )
                return self._zero_award(user, AwardStatus.LIMIT_REACHED, "Daily limit reached")

        entries = [
            PendingTransaction(
                points=amount,
                action_type=action.value,
                description=description or rule.description,
                metadata=metadata,
                dedup_key=dedup_key,
            )
        ]
        user_updates = None
        streak_info = None

        if action == PointActionType.DAILY_LOGIN:
            streak_info, user_updates, bonus_entry = self._next_streak(user, now)
            if bonus_entry is not None:
                entries.append(bonus_entry)

        recorded = self.points_repo.record_transactions(
            user_id, entries, user_updates=user_updates, commit=commit
        )
        if recorded is None:
            # dedup_key 경합에서 진 경우 (동시 요청)
            return self._zero_award(
                self.user_repo.get_by_id(user_id) or user,
                AwardStatus.DUPLICATE,
                "Already awarded",
            )

        awarded = sum(entry.points for entry in recorded)
        logger.info(f"Awarded {awarded} points to user {user_id} for {action.value}")

        achievements: List[AchievementSummary] = []
        if run_hooks and commit:
            achievements = self.run_post_commit_hooks(user_id)

        return AwardPointsResponse(
            success=True,
            points_awarded=awarded,
            new_total=self.user_repo.get_total_points(user_id),
            status=AwardStatus.AWARDED,
            achievements_unlocked=achievements,
            streak_info=streak_info,
        )

    def _zero_award(self, user: User, status: str, message: str) -> AwardPointsResponse:
        return AwardPointsResponse(
            success=True,
            points_awarded=0,
            new_total=self.user_repo.get_total_points(user.privy_did),
            status=status,
            message=message,
        )

    def _next_streak(self, user: User, now):
        """연속 로그인 계산 (UTC 달력일 기준)"""
        today = now.date()
        last = user.last_login_date
        if last == today - timedelta(days=1):
            current = user.current_streak + 1
        elif last == today:
            current = max(user.current_streak, 1)
        else:
            current = 1
        longest = max(current, user.longest_streak)

        multiplier = get_streak_multiplier(current)
        bonus = streak_bonus_points(current)
        bonus_entry = None
        if bonus > 0:
            bonus_entry = PendingTransaction(
                points=bonus,
                action_type=PointActionType.STREAK_BONUS.value,
                description=f"{current} day streak bonus",
                metadata={"streak": current, "multiplier": multiplier},
                dedup_key=build_dedup_key(
                    PointActionType.STREAK_BONUS, user.privy_did, None, today.isoformat()
                ),
            )

        info = StreakInfo(
            current_streak=current,
            longest_streak=longest,
            multiplier=multiplier,
            streak_bonus=bonus,
        )
        updates = {
            "current_streak": current,
            "longest_streak": longest,
            "last_login_date": today,
        }
        return info, updates, bonus_entry

    def run_post_commit_hooks(self, user_id: str) -> List[AchievementSummary]:
        """
        커밋 이후 업적/OG 평가 (best-effort)

        실패는 로그만 남기며, 이미 커밋된 포인트 지급에는 영향을 주지 않습니다.
        """
        from socialapi.services.og_service import OGService

        unlocked: List[AchievementSummary] = []
        try:
            unlocked = self.achievement_service.evaluate(user_id)
        except Exception as e:
            logger.error(f"Achievement evaluation failed for user {user_id}: {str(e)}", exc_info=True)
            self.db.rollback()

        try:
            OGService(self.db, self.settings).check_and_grant(user_id)
        except Exception as e:
            logger.error(f"OG evaluation failed for user {user_id}: {str(e)}", exc_info=True)
            self.db.rollback()

        return unlocked

    def admin_adjust_points(self, request: AdminPointsAdjustmentRequest) -> AwardPointsResponse:
        """관리자 포인트 보정 - 총 포인트가 음수가 되는 보정은 거부"""
        user = self.user_repo.get_by_id(request.user_id)
        if user is None:
            raise NotFoundError("User not found", details={"userId": request.user_id})

        if user.total_points + request.points < 0:
            raise ValidationError(
                "Adjustment would make total points negative",
                details={"totalPoints": user.total_points, "points": request.points},
            )

        ref_id = request.ref_id or f"admin_{uuid.uuid4().hex}"
        logger.info(
            f"Admin adjustment for user {request.user_id}: {request.points} ({request.reason})"
        )
        return self.award_points(
            request.user_id,
            PointActionType.ADMIN_ADJUSTMENT,
            {"refId": ref_id, "reason": request.reason},
            points=request.points,
            description=f"Admin adjustment: {request.reason}",
        )

    def get_history(
        self, user_id: str, page: int = 1, limit: Optional[int] = None
    ) -> PointsHistoryResponse:
        """포인트 거래 내역 (최신순, 페이지 단위)"""
        if page < 1:
            raise ValidationError("page must be >= 1")
        if limit is None:
            limit = self.settings.HISTORY_DEFAULT_LIMIT
        if limit < 1:
            raise ValidationError("limit must be a positive integer")
        limit = min(limit, self.settings.HISTORY_MAX_LIMIT)

        if not self.user_repo.exists_by_id(user_id):
            raise NotFoundError("User not found", details={"userId": user_id})

        transactions, total = self.points_repo.get_history(
            user_id, limit=limit, offset=(page - 1) * limit
        )
        return PointsHistoryResponse(
            transactions=transactions,
            total=total,
            page=page,
            limit=limit,
            has_next=page * limit < total,
        )

    def get_user_points(self, user_id: str) -> UserPointsResponse:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"userId": user_id})

        rank, _ = self.points_repo.user_rank(user_id, None)
        today_points = self.points_repo.sum_points_since(user_id, utc_day_start())
        return UserPointsResponse(
            user_id=user.privy_did,
            username=user.username,
            total_points=user.total_points,
            today_points=today_points,
            rank=rank,
            current_streak=user.current_streak,
            longest_streak=user.longest_streak,
            referral_code=user.referral_code,
            is_og=user.is_og,
            og_reason=user.og_reason,
        )

    def verify_integrity(self, user_id: str) -> PointsIntegrityResponse:
        """원장 합계와 users.total_points 비교"""
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"userId": user_id})

        ledger_sum, count = self.points_repo.ledger_totals(user_id)
        difference = user.total_points - ledger_sum
        status = "OK" if difference == 0 else "MISMATCH"
        if status == "MISMATCH":
            logger.error(
                f"Points mismatch for user {user_id}: total={user.total_points} ledger={ledger_sum}"
            )
        return PointsIntegrityResponse(
            user_id=user_id,
            total_points=user.total_points,
            ledger_sum=ledger_sum,
            difference=difference,
            transaction_count=count,
            status=status,
        )
