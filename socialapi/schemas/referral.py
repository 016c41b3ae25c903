from datetime import datetime
from typing import List, Optional

from pydantic import Field

from socialapi.schemas.common import CamelModel


class ReferrerInfo(CamelModel):
    username: str
    image: Optional[str] = None


class ReferralCheckResponse(CamelModel):
    """추천 코드 검증 결과 (부작용 없음)"""

    valid: bool
    referrer_user_id: Optional[str] = None
    referrer: Optional[ReferrerInfo] = None


class ProcessReferralRequest(CamelModel):
    referral_code: str = Field(..., min_length=1)
    new_user_id: str = Field(..., min_length=1)


class ProcessReferralResponse(CamelModel):
    success: bool
    message: str


class ReferredUser(CamelModel):
    privy_did: str
    username: str
    image: Optional[str] = None
    joined_at: Optional[datetime] = None


class ReferralStatsResponse(CamelModel):
    user_id: str
    referral_code: str
    total_referrals: int
    points_earned: int
    referred_users: List[ReferredUser]
