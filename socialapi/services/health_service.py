import asyncio
import logging
import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from socialapi.config import Settings
from socialapi.providers.tapestry import TapestryClient, TapestryError
from socialapi.repositories.social_repository import SocialRepository
from socialapi.schemas.health import DatabaseHealth, DualModeHealthResponse, TapestryHealth

logger = logging.getLogger(__name__)


class HealthService:
    """로컬 DB / 외부 소셜 그래프 상태 점검"""

    def __init__(self, db: Session, settings: Settings, tapestry: TapestryClient):
        self.db = db
        self.settings = settings
        self.tapestry = tapestry
        self.social_repo = SocialRepository(db)

    def check_database(self) -> DatabaseHealth:
        try:
            counts = self.social_repo.table_counts()
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {str(e)}")
            self.db.rollback()
            return DatabaseHealth(connected=False, error=str(e))
        return DatabaseHealth(connected=True, **counts)

    async def check_tapestry(self) -> TapestryHealth:
        if not self.tapestry.configured:
            return TapestryHealth(configured=False, error="TAPESTRY_API_KEY is not set")

        started = time.perf_counter()
        try:
            await asyncio.wait_for(
                self.tapestry.ping(), timeout=self.settings.TAPESTRY_TIMEOUT_SECONDS
            )
        except (TapestryError, asyncio.TimeoutError) as e:
            logger.warning(f"Tapestry health check failed: {str(e) or type(e).__name__}")
            return TapestryHealth(configured=True, reachable=False, error=str(e) or "timeout")

        latency = round((time.perf_counter() - started) * 1000, 2)
        return TapestryHealth(configured=True, reachable=True, latency_ms=latency)

    async def check(self) -> DualModeHealthResponse:
        """
        전체 상태

        - healthy: DB 와 외부 서비스 모두 정상
        - degraded: DB 정상, 외부 서비스 불가 (로컬 기준으로 계속 동작)
        - error: DB 불가
        """
        database = self.check_database()
        tapestry = await self.check_tapestry()

        if not database.connected:
            status = "error"
        elif tapestry.reachable:
            status = "healthy"
        else:
            status = "degraded"
        return DualModeHealthResponse(status=status, database=database, tapestry=tapestry)
