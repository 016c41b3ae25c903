import logging
from typing import Any, Dict, Iterable, List, Set, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialapi.models.achievement import Achievement, UserAchievement
from socialapi.repositories.base import BaseRepository
from socialapi.schemas.achievements import AchievementDefinition, UnlockedAchievement
from socialapi.utils.date_utils import utcnow

logger = logging.getLogger(__name__)

CATALOG_FIELDS = ("name", "description", "icon", "category", "points_reward", "requirement")


class AchievementRepository(BaseRepository[Achievement, AchievementDefinition]):
    """업적 카탈로그 / 사용자 해제 기록 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(Achievement, AchievementDefinition, db)

    def upsert_by_key(self, definitions: Iterable[Dict[str, Any]]) -> Tuple[int, int]:
        """
        key 기준 업서트 - 사용자 해제 기록(user_achievements)은 건드리지 않음

        Returns:
            Tuple[int, int]: (생성 건수, 갱신 건수)
        """
        created = updated = 0
        existing = {row.key: row for row in self.db.query(Achievement).all()}
        now = utcnow()

        try:
            for definition in definitions:
                row = existing.get(definition["key"])
                if row is None:
                    self.db.add(
                        Achievement(
                            key=definition["key"],
                            created_at=now,
                            updated_at=now,
                            **{name: definition[name] for name in CATALOG_FIELDS},
                        )
                    )
                    created += 1
                    continue

                changed = False
                for name in CATALOG_FIELDS:
                    if getattr(row, name) != definition[name]:
                        setattr(row, name, definition[name])
                        changed = True
                if changed:
                    row.updated_at = now
                    updated += 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return created, updated

    def list_catalog(self) -> List[AchievementDefinition]:
        rows = self.db.query(Achievement).order_by(Achievement.id.asc()).all()
        return [self._to_schema(row) for row in rows]

    def unlocked_ids(self, user_id: str) -> Set[int]:
        rows = (
            self.db.query(UserAchievement.achievement_id)
            .filter(UserAchievement.user_id == user_id)
            .all()
        )
        return {row[0] for row in rows}

    def count_unlocked(self, user_id: str) -> int:
        return (
            self.db.query(func.count(UserAchievement.id))
            .filter(UserAchievement.user_id == user_id)
            .scalar()
            or 0
        )

    def unlock(self, user_id: str, achievement_id: int) -> bool:
        """
        업적 해제 기록 (LOCKED → UNLOCKED)

        Returns:
            bool: 이번 호출로 해제되었으면 True, 이미 해제되어 있으면 False
        """
        self.db.add(
            UserAchievement(
                user_id=user_id, achievement_id=achievement_id, unlocked_at=utcnow()
            )
        )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Achievement {achievement_id} already unlocked for {user_id}")
            return False
        return True

    def list_unlocked(self, user_id: str) -> List[UnlockedAchievement]:
        rows = (
            self.db.query(Achievement, UserAchievement.unlocked_at)
            .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
            .filter(UserAchievement.user_id == user_id)
            .order_by(UserAchievement.unlocked_at.asc())
            .all()
        )
        return [
            UnlockedAchievement(
                **AchievementDefinition.model_validate(achievement).model_dump(),
                unlocked_at=unlocked_at,
            )
            for achievement, unlocked_at in rows
        ]
