from fastapi import APIRouter, Depends, Query

from socialapi.deps import get_profile_service
from socialapi.schemas.profile import (
    EnhancedProfileResponse,
    IdentityResponse,
    ProfileCreateRequest,
    ProfileListResponse,
    ProfileResponse,
    ProfileSearchRequest,
    ProfileUpdateRequest,
    SuggestedProfilesResponse,
    UsernameEligibilityResponse,
    UsernameUpdateRequest,
)
from socialapi.services.profile_service import ProfileService

router = APIRouter(prefix="/profiles", tags=["profiles"])
identities_router = APIRouter(tags=["profiles"])


@router.post("", response_model=ProfileResponse)
async def upsert_profile(
    request: ProfileCreateRequest,
    profile_service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """프로필 생성/갱신 - username 또는 privyDid 충돌 시 409"""
    return await profile_service.upsert_profile(request)


@router.get("", response_model=IdentityResponse)
async def get_profile_by_wallet(
    wallet_address: str = Query(..., alias="walletAddress", min_length=1),
    profile_service: ProfileService = Depends(get_profile_service),
) -> IdentityResponse:
    return await profile_service.get_profile_by_wallet(wallet_address)


@router.get("/username", response_model=UsernameEligibilityResponse)
async def get_username_eligibility(
    privy_did: str = Query(..., alias="privyDid", min_length=1),
    profile_service: ProfileService = Depends(get_profile_service),
) -> UsernameEligibilityResponse:
    return profile_service.get_username_eligibility(privy_did)


@router.put("/username", response_model=ProfileResponse)
async def update_username(
    request: UsernameUpdateRequest,
    profile_service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """username 변경 - 주 1회 제한, 중복이면 409"""
    return await profile_service.update_username(request)


@router.get("/enhanced", response_model=EnhancedProfileResponse)
async def get_enhanced_profile(
    privy_did: str = Query(..., alias="privyDid", min_length=1),
    profile_service: ProfileService = Depends(get_profile_service),
) -> EnhancedProfileResponse:
    return await profile_service.get_enhanced_profile(privy_did)


@router.get("/suggested", response_model=SuggestedProfilesResponse)
async def get_suggested_profiles(
    wallet_address: str = Query(..., alias="walletAddress", min_length=1),
    profile_service: ProfileService = Depends(get_profile_service),
) -> SuggestedProfilesResponse:
    return await profile_service.get_suggested_profiles(wallet_address)


@router.get("/all-profiles", response_model=ProfileListResponse)
async def list_profiles(
    profile_service: ProfileService = Depends(get_profile_service),
) -> ProfileListResponse:
    """로컬 전체 프로필 (최신 가입순)"""
    return profile_service.list_profiles()


@router.put("/{privy_did}", response_model=ProfileResponse)
async def update_profile(
    privy_did: str,
    request: ProfileUpdateRequest,
    profile_service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    return await profile_service.update_profile(privy_did, request)


@identities_router.get("/identities", response_model=IdentityResponse)
async def get_identity(
    wallet_address: str = Query(..., alias="walletAddress", min_length=1),
    profile_service: ProfileService = Depends(get_profile_service),
) -> IdentityResponse:
    return await profile_service.get_identity(wallet_address)


@identities_router.post("/search", response_model=ProfileListResponse)
async def search_profiles(
    request: ProfileSearchRequest,
    profile_service: ProfileService = Depends(get_profile_service),
) -> ProfileListResponse:
    """username 검색 - query 가 비어 있으면 400"""
    return profile_service.search_profiles(request)
