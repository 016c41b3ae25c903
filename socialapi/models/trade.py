from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from socialapi.models.base import Base, BigIntId


class Trade(Base):
    """
    스왑 완료 기록 - 누적 거래량의 근거

    transaction_signature 유니크 제약으로 같은 거래가 거래량에 두 번 반영되지 않습니다.
    서명 없이 보고된 거래는 NULL 로 저장되며 중복 검사 대상이 아닙니다.
    """

    __tablename__ = "trades"
    __table_args__ = (
        UniqueConstraint("transaction_signature", name="uq_trades_signature"),
        CheckConstraint("volume_usd > 0", name="ck_trades_volume"),
        Index("idx_trades_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.privy_did"), nullable=False
    )
    transaction_signature: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    volume_usd: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    input_mint: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    output_mint: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
