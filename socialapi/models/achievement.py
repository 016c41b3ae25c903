from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from socialapi.models.base import Base, BaseModel, BigIntId


class Achievement(BaseModel):
    """업적 정의 테이블 - key 로 upsert 되는 카탈로그"""

    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    points_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # {"type": "action_count", "action": "FOLLOW_USER", "count": 10} 형식
    requirement: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)


class UserAchievement(Base):
    """사용자 업적 해제 기록 - (user_id, achievement_id) 당 최대 1건"""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.privy_did"), nullable=False, index=True
    )
    achievement_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("achievements.id"), nullable=False
    )
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
