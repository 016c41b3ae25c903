from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from socialapi.models.base import Base, BaseModel, BigIntId


class Follow(Base):
    """팔로우 관계 - (follower_id, following_id) 방향성 있는 유니크 엣지"""

    __tablename__ = "follows"
    __table_args__ = (
        CheckConstraint("follower_id <> following_id", name="ck_follows_no_self"),
        Index("idx_follows_following", "following_id"),
    )

    follower_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.privy_did"), primary_key=True
    )
    following_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.privy_did"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Comment(BaseModel):
    __tablename__ = "comments"
    __table_args__ = (Index("idx_comments_profile_created", "profile_id", "created_at"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    author_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.privy_did"), nullable=False, index=True
    )
    # 댓글이 달린 프로필 (사용자)
    profile_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.privy_did"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    # 외부 소셜 그래프 서비스의 댓글 ID (동기화 실패 시 NULL)
    tapestry_comment_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("user_id", "comment_id", name="uq_like_user_comment"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.privy_did"), nullable=False
    )
    comment_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("comments.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
