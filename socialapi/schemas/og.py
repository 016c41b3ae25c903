from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, model_validator

from socialapi.schemas.common import CamelModel


class TradeVolumeUpdateResult(CamelModel):
    new_total_volume: float
    og_granted: bool = Field(..., description="이번 호출로 OG 가 부여되었는지 여부")
    og_reason: Optional[str] = None
    milestones_reached: List[int] = Field(default_factory=list)


class OGCriterionProgress(CamelModel):
    current: float
    required: float
    percentage: float
    met: bool


class OGProgressResponse(CamelModel):
    """OG 진행 현황 (읽기 전용)"""

    user_id: str
    is_og: bool
    og_reason: Optional[str] = None
    og_granted_at: Optional[datetime] = None
    total_trading_volume_usd: float
    criteria: Dict[str, OGCriterionProgress]
    next_threshold: Optional[str] = Field(None, description="가장 가까운 미충족 기준")
    progress_percentage: float = Field(..., description="OG 이면 0")


class ManualOGGrantRequest(CamelModel):
    user_id: Optional[str] = None
    username: Optional[str] = None
    reason: str = Field("Manual admin grant", min_length=1, max_length=255)

    @model_validator(mode="after")
    def require_target(self):
        if not self.user_id and not self.username:
            raise ValueError("userId or username is required")
        return self


class OGStatusResponse(CamelModel):
    user_id: str
    is_og: bool
    og_reason: Optional[str] = None
    og_granted_at: Optional[datetime] = None


class TradeCompleteRequest(CamelModel):
    """스왑 완료 보고"""

    privy_did: Optional[str] = None
    wallet_address: Optional[str] = None
    trade_volume_usd: float = Field(..., gt=0, alias="tradeVolumeUSD")
    transaction_signature: Optional[str] = None
    input_mint: Optional[str] = None
    output_mint: Optional[str] = None

    @model_validator(mode="after")
    def require_user_reference(self):
        if not self.privy_did and not self.wallet_address:
            raise ValueError("privyDid or walletAddress is required")
        return self


class TradeCompleteResponse(CamelModel):
    success: bool = True
    volume_updated: bool
    message: str
    user_id: Optional[str] = None
    points_awarded: int = 0
    duplicate: bool = False
    new_total_volume: Optional[float] = None
    og_granted: bool = False
    og_reason: Optional[str] = None
    milestones_reached: List[int] = Field(default_factory=list)
