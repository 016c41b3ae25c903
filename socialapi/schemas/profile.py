from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from socialapi.schemas.common import CamelModel, DataSource
from socialapi.schemas.user import User

USERNAME_PATTERN = r"^[A-Za-z0-9_]{3,30}$"


class ProfileCreateRequest(CamelModel):
    """프로필 생성/업서트 요청"""

    privy_did: str = Field(..., min_length=1)
    username: str = Field(..., pattern=USERNAME_PATTERN)
    bio: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = None
    solana_wallet_address: Optional[str] = None
    embedded_wallet_address: Optional[str] = None
    referral_code: Optional[str] = Field(None, description="가입 시 사용한 추천 코드")


class ProfileUpdateRequest(CamelModel):
    bio: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = None
    solana_wallet_address: Optional[str] = None
    embedded_wallet_address: Optional[str] = None


class UsernameUpdateRequest(CamelModel):
    privy_did: str = Field(..., min_length=1)
    username: str = Field(..., pattern=USERNAME_PATTERN)


class ProfileResponse(CamelModel):
    profile: User
    created: bool = False
    external_synced: bool = False
    referral_applied: bool = False
    points_awarded: int = 0


class UsernameEligibilityResponse(CamelModel):
    can_change: bool
    last_username_change: Optional[datetime] = None
    next_allowed_change: Optional[datetime] = None
    days_remaining: int = 0


class SocialCounts(CamelModel):
    followers: int = 0
    following: int = 0


class EnhancedProfileResponse(CamelModel):
    profile: User
    social_counts: SocialCounts
    external_counts: Optional[SocialCounts] = None
    tapestry_profile: Optional[Dict[str, Any]] = None
    data_source: DataSource


class SuggestedProfilesResponse(CamelModel):
    wallet_address: str
    profiles: List[Dict[str, Any]]
    data_source: DataSource


class IdentityResponse(CamelModel):
    wallet_address: str
    local_profile: Optional[User] = None
    identities: List[Dict[str, Any]] = Field(default_factory=list)
    data_source: DataSource


class ProfileSearchRequest(CamelModel):
    query: Optional[str] = Field(None, description="username 부분 문자열 (대소문자 무시)")


class ProfileListResponse(CamelModel):
    profiles: List[User]
    count: int
