import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from socialapi.models.user import User as UserModel
from socialapi.repositories.base import BaseRepository
from socialapi.schemas.referral import ReferredUser
from socialapi.schemas.user import User as UserSchema
from socialapi.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[UserModel, UserSchema]):
    """사용자 리포지토리 - privy_did 가 기본 키"""

    id_field = "privy_did"

    def __init__(self, db: Session):
        super().__init__(UserModel, UserSchema, db)

    def get_model(self, id):
        # 벌크 UPDATE 이후에도 최신 값을 읽도록 identity map 을 갱신
        return (
            self.db.query(UserModel)
            .populate_existing()
            .filter(UserModel.privy_did == id)
            .first()
        )

    def get_by_username(self, username: str) -> Optional[UserSchema]:
        return self.get_by_field("username", username)

    def get_by_referral_code(self, code: str) -> Optional[UserSchema]:
        return self.get_by_field("referral_code", code)

    def get_by_wallet(self, wallet_address: str) -> Optional[UserSchema]:
        """Solana 지갑 또는 임베디드 지갑 주소로 조회"""
        model = (
            self.db.query(UserModel)
            .filter(
                or_(
                    UserModel.solana_wallet_address == wallet_address,
                    UserModel.embedded_wallet_address == wallet_address,
                )
            )
            .first()
        )
        return self._to_schema(model)

    def exists_by_id(self, privy_did: str) -> bool:
        return self.exists({"privy_did": privy_did})

    def username_taken(self, username: str, exclude_privy_did: Optional[str] = None) -> bool:
        query = self.db.query(UserModel.privy_did).filter(
            func.lower(UserModel.username) == username.lower()
        )
        if exclude_privy_did:
            query = query.filter(UserModel.privy_did != exclude_privy_did)
        return query.first() is not None

    def referral_code_taken(self, code: str) -> bool:
        return self.exists({"referral_code": code})

    def create_user(
        self,
        privy_did: str,
        username: str,
        referral_code: str,
        bio: Optional[str] = None,
        image: Optional[str] = None,
        solana_wallet_address: Optional[str] = None,
        embedded_wallet_address: Optional[str] = None,
        created_at: Optional[datetime] = None,
        commit: bool = True,
    ) -> UserSchema:
        """사용자 생성 - 유니크 충돌 시 IntegrityError 를 그대로 전파"""
        now = created_at or utcnow()
        return self.create(
            commit=commit,
            privy_did=privy_did,
            username=username,
            referral_code=referral_code,
            bio=bio,
            image=image,
            solana_wallet_address=solana_wallet_address,
            embedded_wallet_address=embedded_wallet_address,
            total_points=0,
            current_streak=0,
            longest_streak=0,
            total_trading_volume_usd=Decimal("0"),
            is_og=False,
            created_at=now,
            updated_at=now,
        )

    def update_fields(self, privy_did: str, commit: bool = True, **fields) -> Optional[UserSchema]:
        fields["updated_at"] = utcnow()
        return self.update(privy_did, commit=commit, **fields)

    def set_referred_by_if_unset(self, privy_did: str, referrer_id: str) -> bool:
        """
        referred_by 조건부 설정 (커밋하지 않음)

        UPDATE users SET referred_by = :referrer WHERE privy_did = :id AND referred_by IS NULL

        Returns:
            bool: 이번 호출로 설정되었으면 True
        """
        updated = (
            self.db.query(UserModel)
            .filter(
                UserModel.privy_did == privy_did,
                UserModel.referred_by.is_(None),
            )
            .update({UserModel.referred_by: referrer_id}, synchronize_session=False)
        )
        return updated == 1

    def add_trading_volume(self, privy_did: str, amount: Decimal, commit: bool = True) -> Decimal:
        """거래량 원자적 증가 후 새 누적 거래량 반환 (commit=False 면 호출자가 커밋)"""
        self.db.query(UserModel).filter(UserModel.privy_did == privy_did).update(
            {
                UserModel.total_trading_volume_usd: UserModel.total_trading_volume_usd
                + amount
            },
            synchronize_session=False,
        )
        if commit:
            self.db.commit()
        return self.get_trading_volume(privy_did)

    def get_trading_volume(self, privy_did: str) -> Decimal:
        value = (
            self.db.query(UserModel.total_trading_volume_usd)
            .filter(UserModel.privy_did == privy_did)
            .scalar()
        )
        return Decimal(value or 0)

    def get_total_points(self, privy_did: str) -> int:
        value = (
            self.db.query(UserModel.total_points)
            .filter(UserModel.privy_did == privy_did)
            .scalar()
        )
        return int(value or 0)

    def grant_og_if_not_og(self, privy_did: str, reason: str, granted_at: datetime) -> bool:
        """
        OG 조건부 부여 (false → true 단방향)

        UPDATE users SET is_og = true ... WHERE privy_did = :id AND is_og = false
        """
        updated = (
            self.db.query(UserModel)
            .filter(UserModel.privy_did == privy_did, UserModel.is_og.is_(False))
            .update(
                {
                    UserModel.is_og: True,
                    UserModel.og_reason: reason,
                    UserModel.og_granted_at: granted_at,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated == 1

    def count_referrals(self, referrer_id: str) -> int:
        return self.count({"referred_by": referrer_id})

    def list_referred_users(self, referrer_id: str) -> List[ReferredUser]:
        rows = (
            self.db.query(UserModel)
            .filter(UserModel.referred_by == referrer_id)
            .order_by(UserModel.created_at.desc())
            .all()
        )
        return [
            ReferredUser(
                privy_did=row.privy_did,
                username=row.username,
                image=row.image,
                joined_at=row.created_at,
            )
            for row in rows
        ]

    def list_all_ids(self) -> List[str]:
        return [row[0] for row in self.db.query(UserModel.privy_did).all()]

    def list_newest_first(self) -> List[UserSchema]:
        rows = self.db.query(UserModel).order_by(UserModel.created_at.desc()).all()
        return [self._to_schema(row) for row in rows]

    def search_by_username(self, query: str, limit: int) -> List[UserSchema]:
        """username 부분 일치 검색 (대소문자 무시)"""
        rows = (
            self.db.query(UserModel)
            .filter(func.lower(UserModel.username).contains(query.lower(), autoescape=True))
            .order_by(UserModel.username)
            .limit(limit)
            .all()
        )
        return [self._to_schema(row) for row in rows]

    def get_many_by_usernames(self, usernames: List[str]) -> List[UserSchema]:
        if not usernames:
            return []
        rows = self.db.query(UserModel).filter(UserModel.username.in_(usernames)).all()
        return [self._to_schema(row) for row in rows]
