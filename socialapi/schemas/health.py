from datetime import datetime, timezone
from typing import Optional

from pydantic import Field

from socialapi.schemas.common import CamelModel


class HealthCheckResponse(CamelModel):
    status: str = "ok"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DatabaseHealth(CamelModel):
    connected: bool
    users: int = 0
    follows: int = 0
    comments: int = 0
    likes: int = 0
    error: Optional[str] = None


class TapestryHealth(CamelModel):
    configured: bool
    reachable: bool = False
    latency_ms: Optional[float] = None
    error: Optional[str] = None


class DualModeHealthResponse(CamelModel):
    """로컬 DB + 외부 소셜 그래프 상태 (healthy | degraded | error)"""

    status: str
    database: DatabaseHealth
    tapestry: TapestryHealth
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
