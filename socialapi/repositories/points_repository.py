"""
포인트 원장 리포지토리

원장 INSERT 와 users.total_points 증가는 항상 같은 트랜잭션(단일 커밋)에서 처리합니다.
중복 지급은 dedup_key 유니크 제약으로 막으며, IntegrityError 는 "중복" 결과(None)로 변환됩니다.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialapi.models.points import PointTransaction
from socialapi.models.user import User
from socialapi.schemas.points import PointTransactionEntry
from socialapi.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class PendingTransaction:
    points: int
    action_type: str
    description: str
    metadata: Optional[Dict[str, Any]] = None
    dedup_key: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class ScoreRow:
    user_id: str
    username: str
    image: Optional[str]
    is_og: bool
    points: int
    created_at: Optional[datetime] = field(default=None)


class PointsRepository:
    """포인트 원장 리포지토리"""

    def __init__(self, db: Session):
        self.db = db

    def _to_entry(self, row: PointTransaction) -> PointTransactionEntry:
        return PointTransactionEntry(
            id=row.id,
            user_id=row.user_id,
            points=row.points,
            action_type=row.action_type,
            description=row.description,
            metadata=row.meta,
            created_at=row.created_at,
        )

    def record_transactions(
        self,
        user_id: str,
        entries: List[PendingTransaction],
        user_updates: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> Optional[List[PointTransactionEntry]]:
        """
        원장 기록 + 총 포인트 증가 (원자적)

        Args:
            user_id: 사용자 ID
            entries: 기록할 거래 목록 (같은 트랜잭션)
            user_updates: 같은 트랜잭션에서 함께 갱신할 users 컬럼 (예: 스트릭)
            commit: False 면 flush 까지만 수행 (호출자가 커밋)

        Returns:
            Optional[List[PointTransactionEntry]]: 기록된 거래, dedup_key 충돌 시 None.
            충돌 시 세션은 롤백되므로 같은 트랜잭션의 다른 보류 쓰기도 함께 취소됩니다.
        """
        now = utcnow()
        rows = [
            PointTransaction(
                user_id=user_id,
                points=entry.points,
                action_type=entry.action_type,
                description=entry.description,
                meta=entry.metadata,
                dedup_key=entry.dedup_key,
                created_at=entry.created_at or now,
            )
            for entry in entries
        ]
        delta = sum(entry.points for entry in entries)

        values: Dict[Any, Any] = {User.total_points: User.total_points + delta}
        for key, value in (user_updates or {}).items():
            values[getattr(User, key)] = value

        try:
            self.db.add_all(rows)
            self.db.flush()
            self.db.query(User).filter(User.privy_did == user_id).update(
                values, synchronize_session=False
            )
            if commit:
                self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info(
                f"Duplicate point award ignored for user {user_id}: {str(e.orig)}"
            )
            return None

        return [self._to_entry(row) for row in rows]

    def dedup_key_exists(self, dedup_key: str) -> bool:
        return (
            self.db.query(PointTransaction.id)
            .filter(PointTransaction.dedup_key == dedup_key)
            .first()
            is not None
        )

    def count_actions_since(self, user_id: str, action_type: str, since: datetime) -> int:
        return (
            self.db.query(func.count(PointTransaction.id))
            .filter(
                PointTransaction.user_id == user_id,
                PointTransaction.action_type == action_type,
                PointTransaction.created_at >= since,
            )
            .scalar()
            or 0
        )

    def sum_points_since(self, user_id: str, since: datetime) -> int:
        return int(
            self.db.query(func.coalesce(func.sum(PointTransaction.points), 0))
            .filter(
                PointTransaction.user_id == user_id,
                PointTransaction.created_at >= since,
            )
            .scalar()
        )

    def ledger_totals(self, user_id: str) -> Tuple[int, int]:
        """(원장 합계, 거래 건수)"""
        total, count = (
            self.db.query(
                func.coalesce(func.sum(PointTransaction.points), 0),
                func.count(PointTransaction.id),
            )
            .filter(PointTransaction.user_id == user_id)
            .one()
        )
        return int(total), int(count)

    def sum_points_for_action(self, user_id: str, action_type: str) -> int:
        return int(
            self.db.query(func.coalesce(func.sum(PointTransaction.points), 0))
            .filter(
                PointTransaction.user_id == user_id,
                PointTransaction.action_type == action_type,
            )
            .scalar()
        )

    def count_by_action(self, user_id: str) -> Dict[str, int]:
        rows = (
            self.db.query(PointTransaction.action_type, func.count(PointTransaction.id))
            .filter(PointTransaction.user_id == user_id)
            .group_by(PointTransaction.action_type)
            .all()
        )
        return {action: int(count) for action, count in rows}

    def get_history(
        self, user_id: str, limit: int, offset: int
    ) -> Tuple[List[PointTransactionEntry], int]:
        """최신순 거래 내역과 전체 건수"""
        base = self.db.query(PointTransaction).filter(PointTransaction.user_id == user_id)
        total = base.count()
        rows = (
            base.order_by(PointTransaction.created_at.desc(), PointTransaction.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [self._to_entry(row) for row in rows], total

    # Leaderboard
    def _windowed_scores(self, since: datetime):
        return (
            select(
                PointTransaction.user_id.label("user_id"),
                func.sum(PointTransaction.points).label("points"),
            )
            .where(PointTransaction.created_at >= since)
            .group_by(PointTransaction.user_id)
            .subquery()
        )

    def top_scores(self, limit: int, since: Optional[datetime]) -> List[ScoreRow]:
        """
        기간 내 포인트 합계 상위 사용자

        정렬: 포인트 내림차순 → 가입 시각 오름차순 → privy_did 오름차순
        since 가 None 이면 users.total_points (전체 기간 합계와 동일) 사용
        """
        if since is None:
            score = User.total_points
            stmt = select(
                User.privy_did, User.username, User.image, User.is_og, User.created_at, score
            ).where(score > 0)
        else:
            scores = self._windowed_scores(since)
            score = scores.c.points
            stmt = (
                select(
                    User.privy_did,
                    User.username,
                    User.image,
                    User.is_og,
                    User.created_at,
                    score,
                )
                .join(scores, scores.c.user_id == User.privy_did)
                .where(score > 0)
            )

        stmt = stmt.order_by(
            score.desc(), User.created_at.asc(), User.privy_did.asc()
        ).limit(limit)

        return [
            ScoreRow(
                user_id=row[0],
                username=row[1],
                image=row[2],
                is_og=bool(row[3]),
                created_at=row[4],
                points=int(row[5] or 0),
            )
            for row in self.db.execute(stmt).all()
        ]

    def user_score(self, user_id: str, since: Optional[datetime]) -> int:
        if since is None:
            value = (
                self.db.query(User.total_points).filter(User.privy_did == user_id).scalar()
            )
            return int(value or 0)
        return self.sum_points_since(user_id, since)

    def user_rank(self, user_id: str, since: Optional[datetime]) -> Tuple[Optional[int], int]:
        """
        사용자 순위와 점수 (점수가 0 이하이면 순위 없음)

        Returns:
            Tuple[Optional[int], int]: (rank, points)
        """
        user = (
            self.db.query(User.privy_did, User.created_at)
            .filter(User.privy_did == user_id)
            .first()
        )
        if user is None:
            return None, 0

        points = self.user_score(user_id, since)
        if points <= 0:
            return None, points

        if since is None:
            score = User.total_points
            stmt = select(func.count()).select_from(User)
        else:
            scores = self._windowed_scores(since)
            score = scores.c.points
            stmt = select(func.count()).select_from(
                scores.join(User, scores.c.user_id == User.privy_did)
            )

        ahead = stmt.where(
            or_(
                score > points,
                and_(
                    score == points,
                    or_(
                        User.created_at < user.created_at,
                        and_(
                            User.created_at == user.created_at,
                            User.privy_did < user.privy_did,
                        ),
                    ),
                ),
            )
        )
        return int(self.db.execute(ahead).scalar() or 0) + 1, points
