import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from socialapi.config import Settings
from socialapi.core.exceptions import NotFoundError, ValidationError
from socialapi.repositories.points_repository import PointsRepository
from socialapi.repositories.user_repository import UserRepository
from socialapi.schemas.leaderboard import (
    LeaderboardEntry,
    LeaderboardPeriod,
    LeaderboardResponse,
    RequestingUserRank,
)
from socialapi.utils.date_utils import window_start

logger = logging.getLogger(__name__)


class LeaderboardService:
    """기간별 포인트 합계 리더보드"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.points_repo = PointsRepository(db)
        self.user_repo = UserRepository(db)

    def get_leaderboard(
        self,
        limit: Optional[int] = None,
        period: Union[LeaderboardPeriod, str] = LeaderboardPeriod.ALL,
        user_id: Optional[str] = None,
    ) -> LeaderboardResponse:
        """
        리더보드 조회

        Args:
            limit: 조회 인원 (1 이상, LEADERBOARD_MAX_LIMIT 로 잘림)
            period: daily | weekly | monthly | all
            user_id: 지정 시 해당 사용자의 순위를 함께 반환

        Returns:
            LeaderboardResponse: 순위 목록 (+ 요청 사용자 순위)
        """
        if limit is None:
            limit = self.settings.LEADERBOARD_DEFAULT_LIMIT
        if limit < 1:
            raise ValidationError("limit must be a positive integer", details={"limit": limit})
        limit = min(limit, self.settings.LEADERBOARD_MAX_LIMIT)

        try:
            period = LeaderboardPeriod(period)
        except ValueError:
            raise ValidationError(
                f"Invalid period: {period}",
                details={"allowed": [p.value for p in LeaderboardPeriod]},
            )

        if user_id and not self.user_repo.exists_by_id(user_id):
            raise NotFoundError("User not found", details={"userId": user_id})

        since = window_start(period.value)
        rows = self.points_repo.top_scores(limit, since)
        entries = [
            LeaderboardEntry(
                rank=index + 1,
                user_id=row.user_id,
                username=row.username,
                image=row.image,
                points=row.points,
                is_og=row.is_og,
            )
            for index, row in enumerate(rows)
        ]

        requesting_user = None
        if user_id:
            match = next((entry for entry in entries if entry.user_id == user_id), None)
            if match is not None:
                requesting_user = RequestingUserRank(
                    rank=match.rank, points=match.points, in_entries=True
                )
            else:
                rank, points = self.points_repo.user_rank(user_id, since)
                requesting_user = RequestingUserRank(
                    rank=rank, points=points, in_entries=False
                )

        logger.info(f"Leaderboard {period.value} limit={limit}: {len(entries)} entries")
        return LeaderboardResponse(
            period=period,
            limit=limit,
            entries=entries,
            requesting_user=requesting_user,
        )
