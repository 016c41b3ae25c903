from datetime import date, datetime
from typing import Optional

from pydantic import Field

from socialapi.schemas.common import CamelModel


class User(CamelModel):
    """사용자 프로필 (users 테이블 전체)"""

    privy_did: str = Field(..., description="외부 인증 주체 ID")
    username: str
    bio: Optional[str] = None
    image: Optional[str] = None
    solana_wallet_address: Optional[str] = None
    embedded_wallet_address: Optional[str] = None

    total_points: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_login_date: Optional[date] = None

    total_trading_volume_usd: float = 0.0
    is_og: bool = False
    og_reason: Optional[str] = None
    og_granted_at: Optional[datetime] = None

    referral_code: str
    referred_by: Optional[str] = None
    last_username_change: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserSummary(CamelModel):
    """다른 응답에 포함되는 간략 사용자 정보"""

    privy_did: str
    username: str
    image: Optional[str] = None
    is_og: bool = False
