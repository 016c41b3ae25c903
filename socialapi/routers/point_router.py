"""
포인트 / 업적 / 추천 / 리더보드 API 라우터

포인트:
- POST /points/award: 포인트 지급 (중복/한도 초과는 0 포인트 성공 응답)
- GET /points/history: 거래 내역 (userId, page, limit)
- GET /points/leaderboard: 리더보드 (limit, period, userId)
- GET /points/user: 사용자 포인트 요약
- GET /points/integrity: 원장 정합성 검증
- POST /points/admin/adjust: 관리자 보정 (X-Admin-Key)
- POST /points/init: 업적 카탈로그 시드

업적:
- GET /points/achievements: 사용자 업적 (userId)
- GET /points/achievements/catalog: 전체 카탈로그
- POST /points/achievements/init: 카탈로그 시드

추천:
- GET /points/referrals: 추천 통계 (userId)
- GET /points/referrals/check: 추천 코드 검증 (code)
- POST /points/referrals: 추천 처리

에러 응답: {"error": str, "code": str, "details"?: {...}} / 400, 403, 404, 409, 500
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from socialapi.core.security import require_admin_key
from socialapi.deps import (
    get_achievement_service,
    get_leaderboard_service,
    get_point_service,
    get_referral_service,
)
from socialapi.schemas.achievements import AchievementDefinition, UserAchievementsResponse
from socialapi.schemas.leaderboard import LeaderboardPeriod, LeaderboardResponse
from socialapi.schemas.points import (
    AdminPointsAdjustmentRequest,
    AwardPointsRequest,
    AwardPointsResponse,
    InitResponse,
    PointsHistoryResponse,
    PointsIntegrityResponse,
    UserPointsResponse,
)
from socialapi.schemas.referral import (
    ProcessReferralRequest,
    ProcessReferralResponse,
    ReferralCheckResponse,
    ReferralStatsResponse,
)
from socialapi.services.achievement_service import AchievementService
from socialapi.services.leaderboard_service import LeaderboardService
from socialapi.services.point_service import PointService
from socialapi.services.referral_service import ReferralService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/points", tags=["points"])


@router.post("/award", response_model=AwardPointsResponse)
async def award_points(
    request: AwardPointsRequest,
    point_service: PointService = Depends(get_point_service),
) -> AwardPointsResponse:
    """
    포인트 지급

    내부 전용 액션(STREAK_BONUS, ACHIEVEMENT_UNLOCKED, ADMIN_ADJUSTMENT)은 400.

    HTTP Status:
        200: 지급 / 중복 / 일일 한도 (status 필드로 구분)
        400: 알 수 없는 액션, 필수 metadata 누락
        404: 사용자 없음
    """
    return point_service.award_points(
        request.user_id,
        request.action_type,
        request.metadata,
        allow_internal=False,
    )


@router.get("/history", response_model=PointsHistoryResponse)
async def get_history(
    user_id: str = Query(..., alias="userId", min_length=1),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, description="페이지 크기 (최대 HISTORY_MAX_LIMIT)"),
    point_service: PointService = Depends(get_point_service),
) -> PointsHistoryResponse:
    return point_service.get_history(user_id, page=page, limit=limit)


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: Optional[int] = Query(None, ge=1),
    period: LeaderboardPeriod = Query(LeaderboardPeriod.ALL),
    user_id: Optional[str] = Query(None, alias="userId"),
    leaderboard_service: LeaderboardService = Depends(get_leaderboard_service),
) -> LeaderboardResponse:
    """
    리더보드

    Query Parameters:
        limit: 1 이상 (최대 LEADERBOARD_MAX_LIMIT 로 잘림)
        period: daily | weekly | monthly | all
        userId: 지정 시 requestingUser 에 순위 포함
    """
    return leaderboard_service.get_leaderboard(limit=limit, period=period, user_id=user_id)


@router.get("/user", response_model=UserPointsResponse)
async def get_user_points(
    user_id: str = Query(..., alias="userId", min_length=1),
    point_service: PointService = Depends(get_point_service),
) -> UserPointsResponse:
    return point_service.get_user_points(user_id)


@router.get("/integrity", response_model=PointsIntegrityResponse)
async def verify_integrity(
    user_id: str = Query(..., alias="userId", min_length=1),
    point_service: PointService = Depends(get_point_service),
) -> PointsIntegrityResponse:
    """원장 합계 == users.total_points 검증 (OK | MISMATCH)"""
    return point_service.verify_integrity(user_id)


@router.post(
    "/admin/adjust",
    response_model=AwardPointsResponse,
    dependencies=[Depends(require_admin_key)],
)
async def admin_adjust_points(
    request: AdminPointsAdjustmentRequest,
    point_service: PointService = Depends(get_point_service),
) -> AwardPointsResponse:
    """관리자 포인트 보정 - 같은 refId 는 한 번만 반영"""
    return point_service.admin_adjust_points(request)


@router.post("/init", response_model=InitResponse)
async def initialize(
    achievement_service: AchievementService = Depends(get_achievement_service),
) -> InitResponse:
    return achievement_service.initialize_achievements()


@router.get("/achievements", response_model=UserAchievementsResponse)
async def get_user_achievements(
    user_id: str = Query(..., alias="userId", min_length=1),
    achievement_service: AchievementService = Depends(get_achievement_service),
) -> UserAchievementsResponse:
    return achievement_service.get_user_achievements(user_id)


@router.get("/achievements/catalog", response_model=List[AchievementDefinition])
async def get_achievement_catalog(
    achievement_service: AchievementService = Depends(get_achievement_service),
) -> List[AchievementDefinition]:
    return achievement_service.get_catalog()


@router.post("/achievements/init", response_model=InitResponse)
async def initialize_achievements(
    achievement_service: AchievementService = Depends(get_achievement_service),
) -> InitResponse:
    return achievement_service.initialize_achievements()


@router.get("/referrals", response_model=ReferralStatsResponse)
async def get_referral_stats(
    user_id: str = Query(..., alias="userId", min_length=1),
    referral_service: ReferralService = Depends(get_referral_service),
) -> ReferralStatsResponse:
    return referral_service.get_referral_stats(user_id)


@router.get("/referrals/check", response_model=ReferralCheckResponse)
async def check_referral_code(
    code: str = Query(..., min_length=1),
    referral_service: ReferralService = Depends(get_referral_service),
) -> ReferralCheckResponse:
    return referral_service.check_referral_code(code)


@router.post("/referrals", response_model=ProcessReferralResponse)
async def process_referral(
    request: ProcessReferralRequest,
    referral_service: ReferralService = Depends(get_referral_service),
) -> ProcessReferralResponse:
    """
    추천 처리

    HTTP Status:
        200: 처리 완료
        400: 자기 추천
        404: 코드 또는 사용자 없음
        409: 이미 추천 처리된 사용자
    """
    return referral_service.apply_referral(request.referral_code, request.new_user_id)
