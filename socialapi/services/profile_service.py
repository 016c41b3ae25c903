import logging
import secrets
import string
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialapi.config import Settings
from socialapi.core.dual_write import DualWriteCoordinator, SocialOperation
from socialapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from socialapi.core.point_actions import PointActionType
from socialapi.providers.tapestry import TapestryClient
from socialapi.repositories.social_repository import SocialRepository
from socialapi.repositories.user_repository import UserRepository
from socialapi.schemas.common import DataSource
from socialapi.schemas.profile import (
    EnhancedProfileResponse,
    IdentityResponse,
    ProfileCreateRequest,
    ProfileListResponse,
    ProfileResponse,
    ProfileSearchRequest,
    ProfileUpdateRequest,
    SocialCounts,
    SuggestedProfilesResponse,
    UsernameEligibilityResponse,
    UsernameUpdateRequest,
)
from socialapi.schemas.user import User
from socialapi.services.point_service import PointService
from socialapi.services.referral_service import ReferralService
from socialapi.utils.date_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
PROFILE_SEARCH_LIMIT = 50


class ProfileService:
    """프로필 생성/수정/조회 (외부 소셜 그래프와 이중 쓰기)"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        tapestry: TapestryClient,
        point_service: PointService,
        referral_service: ReferralService,
        coordinator: Optional[DualWriteCoordinator] = None,
    ):
        self.db = db
        self.settings = settings
        self.tapestry = tapestry
        self.point_service = point_service
        self.referral_service = referral_service
        self.coordinator = coordinator or DualWriteCoordinator(
            settings.TAPESTRY_TIMEOUT_SECONDS
        )
        self.user_repo = UserRepository(db)
        self.social_repo = SocialRepository(db)

    def _require_user(self, privy_did: str) -> User:
        user = self.user_repo.get_by_id(privy_did)
        if user is None:
            raise NotFoundError("Profile not found", details={"privyDid": privy_did})
        return user

    def _award(self, user_id: str, action: PointActionType, metadata=None) -> int:
        try:
            return self.point_service.award_points(user_id, action, metadata).points_awarded
        except Exception as e:
            logger.warning(f"{action.value} award failed for user {user_id}: {str(e)}")
            self.db.rollback()
            return 0

    def generate_referral_code(self) -> str:
        length = self.settings.REFERRAL_CODE_LENGTH
        for _ in range(10):
            code = "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))
            if not self.user_repo.referral_code_taken(code):
                return code
        raise RuntimeError("Could not generate a unique referral code")

    async def upsert_profile(self, request: ProfileCreateRequest) -> ProfileResponse:
        """
        프로필 생성 또는 갱신

        신규 생성 시 PROFILE_CREATION 포인트를 지급하고, 추천 코드가 있으면 추천을 처리합니다.
        기존 프로필이면 bio/image/지갑 주소만 갱신합니다 (username 변경은 별도 API).
        """
        existing = self.user_repo.get_by_id(request.privy_did)
        if existing is None and self.user_repo.username_taken(request.username):
            raise ConflictError("Username already taken", details={"username": request.username})

        username = existing.username if existing else request.username
        wallet = request.solana_wallet_address or request.embedded_wallet_address
        external_call = None
        if wallet:
            external_call = lambda: self.tapestry.find_or_create_profile(  # noqa: E731
                wallet, username, bio=request.bio, image=request.image
            )

        def write_local(_outcome) -> User:
            fields = {
                "bio": request.bio,
                "image": request.image,
                "solana_wallet_address": request.solana_wallet_address,
                "embedded_wallet_address": request.embedded_wallet_address,
            }
            if existing is not None:
                updates = {k: v for k, v in fields.items() if v is not None}
                return self.user_repo.update_fields(existing.privy_did, **updates)
            try:
                return self.user_repo.create_user(
                    privy_did=request.privy_did,
                    username=request.username,
                    referral_code=self.generate_referral_code(),
                    **fields,
                )
            except IntegrityError:
                raise ConflictError(
                    "Profile already exists or username taken",
                    details={"privyDid": request.privy_did, "username": request.username},
                )

        result = await self.coordinator.execute(
            SocialOperation.PROFILE_UPSERT, external_call, write_local
        )
        created = existing is None

        points = 0
        referral_applied = False
        if created:
            logger.info(f"Profile created for {request.privy_did} ({request.username})")
            points = self._award(request.privy_did, PointActionType.PROFILE_CREATION)
            if request.referral_code:
                referral_applied = self.referral_service.process_referral(
                    request.referral_code, request.privy_did
                )

        return ProfileResponse(
            profile=self._require_user(request.privy_did),
            created=created,
            external_synced=result.external_synced,
            referral_applied=referral_applied,
            points_awarded=points,
        )

    async def update_profile(self, privy_did: str, request: ProfileUpdateRequest) -> ProfileResponse:
        user = self._require_user(privy_did)
        updates = request.model_dump(exclude_none=True)
        if not updates:
            raise ValidationError("No profile fields to update")

        result = await self.coordinator.execute(
            SocialOperation.PROFILE_UPDATE,
            lambda: self.tapestry.update_profile(
                user.username, bio=request.bio, image=request.image
            ),
            lambda _outcome: self.user_repo.update_fields(privy_did, **updates),
        )
        points = self._award(privy_did, PointActionType.PROFILE_UPDATE)
        return ProfileResponse(
            profile=self._require_user(privy_did),
            external_synced=result.external_synced,
            points_awarded=points,
        )

    def get_username_eligibility(self, privy_did: str) -> UsernameEligibilityResponse:
        """username 변경 가능 여부 (USERNAME_CHANGE_COOLDOWN_DAYS 당 1회)"""
        user = self._require_user(privy_did)
        last_change = as_utc(user.last_username_change)
        if last_change is None:
            return UsernameEligibilityResponse(can_change=True)

        next_allowed = last_change + timedelta(days=self.settings.USERNAME_CHANGE_COOLDOWN_DAYS)
        now = utcnow()
        if now >= next_allowed:
            return UsernameEligibilityResponse(
                can_change=True, last_username_change=last_change
            )

        remaining = next_allowed - now
        days_remaining = remaining.days + (1 if remaining.seconds or remaining.microseconds else 0)
        return UsernameEligibilityResponse(
            can_change=False,
            last_username_change=last_change,
            next_allowed_change=next_allowed,
            days_remaining=days_remaining,
        )

    async def update_username(self, request: UsernameUpdateRequest) -> ProfileResponse:
        user = self._require_user(request.privy_did)
        if user.username == request.username:
            raise ValidationError("New username must be different from the current one")

        eligibility = self.get_username_eligibility(request.privy_did)
        if not eligibility.can_change:
            raise ConflictError(
                "Username can only be changed once per week",
                details={
                    "nextAllowedChange": eligibility.next_allowed_change.isoformat(),
                    "daysRemaining": eligibility.days_remaining,
                },
            )

        if self.user_repo.username_taken(request.username, exclude_privy_did=request.privy_did):
            raise ConflictError("Username already taken", details={"username": request.username})

        def write_local(_outcome) -> User:
            try:
                return self.user_repo.update_fields(
                    request.privy_did,
                    username=request.username,
                    last_username_change=utcnow(),
                )
            except IntegrityError:
                raise ConflictError(
                    "Username already taken", details={"username": request.username}
                )

        result = await self.coordinator.execute(
            SocialOperation.USERNAME_UPDATE,
            lambda: self.tapestry.update_profile(user.username, username=request.username),
            write_local,
        )
        logger.info(f"Username changed for {request.privy_did}: {user.username} -> {request.username}")
        return ProfileResponse(
            profile=self._require_user(request.privy_did),
            external_synced=result.external_synced,
        )

    async def get_profile_by_wallet(self, wallet_address: str) -> IdentityResponse:
        """지갑 주소로 프로필 조회 - 로컬에 없으면 외부 identity 로 대체"""
        local = self.user_repo.get_by_wallet(wallet_address)
        if local is not None:
            return IdentityResponse(
                wallet_address=wallet_address,
                local_profile=local,
                data_source=DataSource(local=True),
            )

        reads = await self.coordinator.gather_reads(
            {"identity": self.tapestry.get_identities(wallet_address)}
        )
        identities = self._identity_profiles(reads["identity"])
        if not identities:
            raise NotFoundError("Profile not found", details={"walletAddress": wallet_address})

        return IdentityResponse(
            wallet_address=wallet_address,
            identities=identities,
            data_source=DataSource(local=False, tapestry=True, social_data=True),
        )

    async def get_identity(self, wallet_address: str) -> IdentityResponse:
        """로컬 프로필 + 외부 identity 를 함께 조회 (각각 실패 허용)"""
        local = self.user_repo.get_by_wallet(wallet_address)
        reads = await self.coordinator.gather_reads(
            {"identity": self.tapestry.get_identities(wallet_address)}
        )
        identities = self._identity_profiles(reads["identity"])
        return IdentityResponse(
            wallet_address=wallet_address,
            local_profile=local,
            identities=identities,
            data_source=DataSource(
                local=local is not None,
                tapestry=reads["identity"] is not None,
                social_data=bool(identities),
            ),
        )

    def list_profiles(self) -> ProfileListResponse:
        """로컬 전체 프로필 (최신 가입순)"""
        profiles = self.user_repo.list_newest_first()
        return ProfileListResponse(profiles=profiles, count=len(profiles))

    def search_profiles(self, request: ProfileSearchRequest) -> ProfileListResponse:
        """username 부분 일치 검색 (대소문자 무시, 최대 50건)"""
        query = (request.query or "").strip()
        if not query:
            raise ValidationError("A query is required", details={"field": "query"})

        profiles = self.user_repo.search_by_username(query, PROFILE_SEARCH_LIMIT)
        return ProfileListResponse(profiles=profiles, count=len(profiles))

    @staticmethod
    def _identity_profiles(payload: Any) -> List[Dict[str, Any]]:
        if not isinstance(payload, dict):
            return []
        identities = payload.get("identities") or payload.get("profiles") or []
        return [item for item in identities if isinstance(item, dict)]

    async def get_enhanced_profile(self, privy_did: str) -> EnhancedProfileResponse:
        """로컬 프로필 + 외부 프로필/팔로워/팔로잉 (병렬 조회, 부분 실패 허용)"""
        user = self._require_user(privy_did)
        counts = SocialCounts(
            followers=self.social_repo.count_followers(privy_did),
            following=self.social_repo.count_following(privy_did),
        )

        reads = await self.coordinator.gather_reads(
            {
                "profile": self.tapestry.get_profile(user.username),
                "followers": self.tapestry.get_followers(user.username),
                "following": self.tapestry.get_following(user.username),
            }
        )

        return EnhancedProfileResponse(
            profile=user,
            social_counts=counts,
            tapestry_profile=reads["profile"],
            external_counts=(
                SocialCounts(
                    followers=len(reads["followers"] or []),
                    following=len(reads["following"] or []),
                )
                if reads["followers"] is not None or reads["following"] is not None
                else None
            ),
            data_source=DataSource(
                local=True,
                tapestry=reads["profile"] is not None,
                social_data=reads["followers"] is not None or reads["following"] is not None,
            ),
        )

    async def get_suggested_profiles(self, wallet_address: str) -> SuggestedProfilesResponse:
        reads = await self.coordinator.gather_reads(
            {"suggested": self.tapestry.get_suggested_profiles(wallet_address)}
        )
        payload = reads["suggested"]
        if isinstance(payload, dict):
            profiles = [item for item in payload.values() if isinstance(item, dict)]
        elif isinstance(payload, list):
            profiles = [item for item in payload if isinstance(item, dict)]
        else:
            profiles = []

        # 로컬에 가입된 사용자는 privyDid / OG 여부를 덧붙임
        usernames = []
        for item in profiles:
            data = item.get("profile", item)
            if isinstance(data, dict) and data.get("username"):
                usernames.append(data["username"])
        local_users = {u.username: u for u in self.user_repo.get_many_by_usernames(usernames)}

        enriched = []
        for item in profiles:
            data = item.get("profile", item)
            local = local_users.get(data.get("username")) if isinstance(data, dict) else None
            if local is not None:
                item = {**item, "privyDid": local.privy_did, "isOG": local.is_og}
            enriched.append(item)

        return SuggestedProfilesResponse(
            wallet_address=wallet_address,
            profiles=enriched,
            data_source=DataSource(
                local=bool(local_users),
                tapestry=payload is not None,
                social_data=bool(profiles),
            ),
        )
