from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from socialapi.models.base import BaseModel


class User(BaseModel):
    """
    사용자 테이블

    - privy_did: 외부 인증 주체 ID (불변, PK)
    - total_points: 포인트 원장(point_transactions) 합계와 항상 같아야 함
    - is_og / og_reason: false → true 단방향, 한번 기록되면 변경되지 않음
    - referred_by: 가입 시 최대 한 번만 설정
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("total_trading_volume_usd >= 0", name="ck_users_volume"),
        CheckConstraint("privy_did <> referred_by", name="ck_users_no_self_referral"),
        Index("idx_users_solana_wallet", "solana_wallet_address"),
        Index("idx_users_embedded_wallet", "embedded_wallet_address"),
    )

    privy_did: Mapped[str] = mapped_column(String(255), primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    solana_wallet_address: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True
    )
    embedded_wallet_address: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True
    )

    # 포인트 / 스트릭
    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_login_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # 트레이딩 / OG
    total_trading_volume_usd: Mapped[Decimal] = mapped_column(
        Numeric(20, 2), default=Decimal("0"), nullable=False
    )
    is_og: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    og_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    og_granted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # 추천
    referral_code: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False
    )
    referred_by: Mapped[Optional[str]] = mapped_column(
        String(255), ForeignKey("users.privy_did"), nullable=True, index=True
    )

    last_username_change: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
