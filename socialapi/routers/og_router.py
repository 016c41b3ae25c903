from fastapi import APIRouter, Depends, Query

from socialapi.core.security import require_admin_key
from socialapi.deps import get_og_service, get_trade_service
from socialapi.schemas.og import (
    ManualOGGrantRequest,
    OGProgressResponse,
    OGStatusResponse,
    TradeCompleteRequest,
    TradeCompleteResponse,
)
from socialapi.services.og_service import OGService
from socialapi.services.trade_service import TradeService

router = APIRouter(prefix="/og", tags=["og"])
trades_router = APIRouter(prefix="/trades", tags=["trades"])


@router.get("/progress", response_model=OGProgressResponse)
async def get_og_progress(
    user_id: str = Query(..., alias="userId", min_length=1),
    og_service: OGService = Depends(get_og_service),
) -> OGProgressResponse:
    """OG 진행 현황 (읽기 전용)"""
    return og_service.get_og_progress(user_id)


@router.post(
    "/admin/grant",
    response_model=OGStatusResponse,
    dependencies=[Depends(require_admin_key)],
)
async def grant_og(
    request: ManualOGGrantRequest,
    og_service: OGService = Depends(get_og_service),
) -> OGStatusResponse:
    """관리자 수동 OG 부여 - 이미 OG 이면 409"""
    return og_service.grant_og_manually(
        user_id=request.user_id, username=request.username, reason=request.reason
    )


@trades_router.post("/complete", response_model=TradeCompleteResponse)
async def complete_trade(
    request: TradeCompleteRequest,
    trade_service: TradeService = Depends(get_trade_service),
) -> TradeCompleteResponse:
    """
    스왑 완료 보고 - 거래 포인트, 누적 거래량, OG, 마일스톤 처리

    미가입 사용자는 200 + volumeUpdated=false
    """
    return trade_service.record_trade(request)
