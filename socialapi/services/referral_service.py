import logging

from sqlalchemy.orm import Session

from socialapi.config import Settings
from socialapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from socialapi.core.point_actions import PointActionType
from socialapi.repositories.points_repository import PointsRepository
from socialapi.repositories.user_repository import UserRepository
from socialapi.schemas.points import AwardStatus
from socialapi.schemas.referral import (
    ProcessReferralResponse,
    ReferralCheckResponse,
    ReferralStatsResponse,
    ReferrerInfo,
)
from socialapi.services.point_service import PointService

logger = logging.getLogger(__name__)


class ReferralService:
    """추천 코드 검증 및 1회성 추천 보상 처리"""

    def __init__(self, db: Session, settings: Settings, point_service: PointService):
        self.db = db
        self.settings = settings
        self.point_service = point_service
        self.user_repo = UserRepository(db)
        self.points_repo = PointsRepository(db)

    def check_referral_code(self, code: str) -> ReferralCheckResponse:
        """추천 코드 조회 (부작용 없음)"""
        code = (code or "").strip()
        if not code:
            return ReferralCheckResponse(valid=False)

        referrer = self.user_repo.get_by_referral_code(code)
        if referrer is None:
            return ReferralCheckResponse(valid=False)

        return ReferralCheckResponse(
            valid=True,
            referrer_user_id=referrer.privy_did,
            referrer=ReferrerInfo(username=referrer.username, image=referrer.image),
        )

    def apply_referral(self, code: str, new_user_id: str) -> ProcessReferralResponse:
        """
        추천 처리 - referred_by 설정과 추천인 보상을 하나의 트랜잭션으로 커밋

        Raises:
            NotFoundError: 코드 또는 신규 사용자가 없을 때
            ValidationError: 자기 추천
            ConflictError: 이미 추천 처리된 사용자
        """
        code = (code or "").strip()
        referrer = self.user_repo.get_by_referral_code(code) if code else None
        if referrer is None:
            raise NotFoundError("Invalid referral code", details={"referralCode": code})

        new_user = self.user_repo.get_by_id(new_user_id)
        if new_user is None:
            raise NotFoundError("User not found", details={"userId": new_user_id})

        if referrer.privy_did == new_user_id:
            raise ValidationError("Self-referral is not allowed")

        if new_user.referred_by:
            raise ConflictError("Referral already processed for this user")

        try:
            if not self.user_repo.set_referred_by_if_unset(new_user_id, referrer.privy_did):
                self.db.rollback()
                raise ConflictError("Referral already processed for this user")

            result = self.point_service.award_points(
                referrer.privy_did,
                PointActionType.REFERRAL_BONUS,
                {"referredUserId": new_user_id, "referralCode": code},
                run_hooks=False,
                commit=False,
            )
            if result.status != AwardStatus.AWARDED:
                # duplicate 인 경우 세션은 이미 롤백됨
                self.db.rollback()
                raise ConflictError("Referral bonus already credited")

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Referral processed: {referrer.privy_did} referred {new_user_id} (+{result.points_awarded})"
        )

        try:
            self.point_service.award_points(
                new_user_id,
                PointActionType.REFERRAL_SIGNUP,
                {"referrerId": referrer.privy_did},
            )
        except Exception as e:
            logger.warning(f"Referral signup bonus failed for {new_user_id}: {str(e)}")

        self.point_service.run_post_commit_hooks(referrer.privy_did)
        return ProcessReferralResponse(success=True, message="Referral processed successfully")

    def process_referral(self, code: str, new_user_id: str) -> bool:
        """
        추천 처리 (실패 시 변경 없이 False)

        알 수 없는 코드/사용자, 자기 추천, 이미 추천된 사용자는 모두 False 입니다.
        """
        try:
            self.apply_referral(code, new_user_id)
            return True
        except (NotFoundError, ValidationError, ConflictError) as e:
            logger.info(f"Referral rejected for {new_user_id} with code {code}: {e.message}")
            return False

    def get_referral_stats(self, user_id: str) -> ReferralStatsResponse:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"userId": user_id})

        return ReferralStatsResponse(
            user_id=user.privy_did,
            referral_code=user.referral_code,
            total_referrals=self.user_repo.count_referrals(user_id),
            points_earned=self.points_repo.sum_points_for_action(
                user_id, PointActionType.REFERRAL_BONUS.value
            ),
            referred_users=self.user_repo.list_referred_users(user_id),
        )
