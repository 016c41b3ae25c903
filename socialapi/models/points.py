"""
포인트 시스템 데이터 모델

사용자 포인트의 모든 변동을 저장하는 원장(Ledger) 테이블을 정의합니다.
포인트의 추가/차감은 모두 이 테이블에 기록되어 완전한 감사 추적(Audit Trail)을 제공합니다.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from socialapi.models.base import Base, BigIntId


class PointTransaction(Base):
    """
    포인트 거래 테이블 - 추가만 가능(append-only)

    이 테이블은 다음 원칙을 따릅니다:
    1. 불변성(Immutable): 한번 생성된 레코드는 수정/삭제되지 않음
    2. 정합성(Integrity): 사용자별 points 합계 == users.total_points
    3. 멱등성(Idempotent): dedup_key 유니크 제약으로 동시 중복 지급 방지
    """

    __tablename__ = "point_transactions"
    __table_args__ = (
        UniqueConstraint("dedup_key", name="uq_point_transactions_dedup_key"),
        Index("idx_point_transactions_user_created", "user_id", "created_at"),
        Index("idx_point_transactions_user_action", "user_id", "action_type"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.privy_did"), nullable=False
    )

    # 포인트 변동량 - 일반 지급은 양수, 관리자 보정만 음수 가능
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # 'metadata' 는 Declarative 예약어라 속성명은 meta
    meta: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True
    )

    # 중복 방지 키 - NULL 이면 중복 검사 없음 (일일 한도만 적용)
    # 형식 예시: "FOLLOW_USER:did:privy:abc:did:privy:xyz", "DAILY_LOGIN:did:privy:abc:2026-10-19"
    dedup_key: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
