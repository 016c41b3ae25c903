import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List

from sqlalchemy.orm import Session

from socialapi.core.achievement_catalog import DEFAULT_ACHIEVEMENTS
from socialapi.core.exceptions import NotFoundError
from socialapi.core.point_actions import PointActionType
from socialapi.repositories.achievement_repository import AchievementRepository
from socialapi.repositories.points_repository import PointsRepository
from socialapi.repositories.social_repository import SocialRepository
from socialapi.repositories.user_repository import UserRepository
from socialapi.schemas.achievements import (
    AchievementDefinition,
    AchievementSummary,
    UserAchievementsResponse,
)
from socialapi.schemas.points import AwardStatus, InitResponse

if TYPE_CHECKING:
    from socialapi.services.point_service import PointService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AchievementStats:
    """업적 평가 시점의 사용자 통계 스냅샷"""

    total_points: int
    current_streak: int
    longest_streak: int
    trading_volume: float
    follows: int
    referrals: int
    action_counts: Dict[str, int] = field(default_factory=dict)


def _action_count(requirement: Dict[str, Any], stats: AchievementStats) -> bool:
    return stats.action_counts.get(requirement["action"], 0) >= requirement["count"]


def _streak(requirement: Dict[str, Any], stats: AchievementStats) -> bool:
    return max(stats.current_streak, stats.longest_streak) >= requirement["days"]


REQUIREMENT_HANDLERS: Dict[str, Callable[[Dict[str, Any], AchievementStats], bool]] = {
    "action_count": _action_count,
    "streak": _streak,
    "referrals": lambda req, stats: stats.referrals >= req["count"],
    "total_points": lambda req, stats: stats.total_points >= req["points"],
    "trading_volume": lambda req, stats: stats.trading_volume >= req["usd"],
    "follows": lambda req, stats: stats.follows >= req["count"],
}


class AchievementService:
    """업적 카탈로그 관리 및 해제 평가"""

    def __init__(self, db: Session, point_service: "PointService"):
        self.db = db
        self.point_service = point_service
        self.achievement_repo = AchievementRepository(db)
        self.user_repo = UserRepository(db)
        self.points_repo = PointsRepository(db)
        self.social_repo = SocialRepository(db)

    def initialize_achievements(self) -> InitResponse:
        """기본 카탈로그 업서트 - 여러 번 실행해도 중복 생성/해제 기록 초기화 없음"""
        created, updated = self.achievement_repo.upsert_by_key(DEFAULT_ACHIEVEMENTS)
        logger.info(f"Achievements initialized: {created} created, {updated} updated")
        return InitResponse(
            message=f"Achievements initialized ({created} created, {updated} updated)",
            count=len(DEFAULT_ACHIEVEMENTS),
        )

    def get_catalog(self) -> List[AchievementDefinition]:
        return self.achievement_repo.list_catalog()

    def get_user_achievements(self, user_id: str) -> UserAchievementsResponse:
        if not self.user_repo.exists_by_id(user_id):
            raise NotFoundError("User not found", details={"userId": user_id})

        catalog = self.achievement_repo.list_catalog()
        unlocked = self.achievement_repo.list_unlocked(user_id)
        unlocked_ids = {item.id for item in unlocked}
        return UserAchievementsResponse(
            user_id=user_id,
            unlocked=unlocked,
            locked=[item for item in catalog if item.id not in unlocked_ids],
            total_unlocked=len(unlocked),
            total_available=len(catalog),
        )

    def build_stats(self, user_id: str) -> AchievementStats:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"userId": user_id})

        return AchievementStats(
            total_points=user.total_points,
            current_streak=user.current_streak,
            longest_streak=user.longest_streak,
            trading_volume=float(user.total_trading_volume_usd),
            follows=self.social_repo.count_following(user_id),
            referrals=self.user_repo.count_referrals(user_id),
            action_counts=self.points_repo.count_by_action(user_id),
        )

    def evaluate(self, user_id: str) -> List[AchievementSummary]:
        """
        미해제 업적을 현재 통계로 평가하여 해제

        해제 보상 지급이 다른 업적 조건(총 포인트 등)을 충족시킬 수 있으므로
        새로 해제되는 업적이 없을 때까지 반복합니다.

        Returns:
            List[AchievementSummary]: 이번 호출에서 새로 해제된 업적
        """
        catalog = self.achievement_repo.list_catalog()
        newly_unlocked: List[AchievementSummary] = []

        for _ in range(len(catalog) + 1):
            stats = self.build_stats(user_id)
            unlocked_ids = self.achievement_repo.unlocked_ids(user_id)
            round_unlocked = []

            for achievement in catalog:
                if achievement.id in unlocked_ids:
                    continue
                if not self._is_satisfied(achievement, stats):
                    continue
                if self._unlock(user_id, achievement):
                    round_unlocked.append(
                        AchievementSummary(
                            id=achievement.id,
                            key=achievement.key,
                            name=achievement.name,
                            points_reward=achievement.points_reward,
                        )
                    )

            if not round_unlocked:
                break
            newly_unlocked.extend(round_unlocked)

        return newly_unlocked

    def _is_satisfied(self, achievement: AchievementDefinition, stats: AchievementStats) -> bool:
        requirement = achievement.requirement or {}
        handler = REQUIREMENT_HANDLERS.get(requirement.get("type", ""))
        if handler is None:
            logger.warning(
                f"Unknown requirement type for achievement {achievement.key}: {requirement}"
            )
            return False
        try:
            return handler(requirement, stats)
        except (KeyError, TypeError) as e:
            logger.warning(f"Malformed requirement for achievement {achievement.key}: {e}")
            return False

    def _unlock(self, user_id: str, achievement: AchievementDefinition) -> bool:
        # 보상 지급(achievementId 로 중복 방지)을 먼저 커밋한 뒤 해제 기록을 남긴다.
        # 둘 사이에서 실패해도 다음 평가 때 보상은 duplicate 로 건너뛰고 해제만 기록된다.
        if achievement.points_reward > 0:
            result = self.point_service.award_points(
                user_id,
                PointActionType.ACHIEVEMENT_UNLOCKED,
                {"achievementId": achievement.id, "achievementKey": achievement.key},
                points=achievement.points_reward,
                description=f"Achievement unlocked: {achievement.name}",
                run_hooks=False,
            )
            if result.status not in (AwardStatus.AWARDED, AwardStatus.DUPLICATE):
                return False

        unlocked = self.achievement_repo.unlock(user_id, achievement.id)
        if unlocked:
            logger.info(f"User {user_id} unlocked achievement {achievement.key}")
        return unlocked
