from fastapi import APIRouter, Depends

from socialapi.deps import get_health_service
from socialapi.schemas.health import DualModeHealthResponse, HealthCheckResponse
from socialapi.services.health_service import HealthService

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""

    return HealthCheckResponse()


@router.get("/health/tapestry", response_model=DualModeHealthResponse)
async def dual_mode_health(
    health_service: HealthService = Depends(get_health_service),
) -> DualModeHealthResponse:
    """Local database and external social graph status (healthy | degraded | error)."""

    return await health_service.check()
