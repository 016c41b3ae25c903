from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from socialapi.models.trade import Trade
from socialapi.utils.date_utils import utcnow


class TradeRepository:
    """스왑 기록 리포지토리 - 커밋은 호출자(TradeService)가 담당"""

    def __init__(self, db: Session):
        self.db = db

    def signature_exists(self, transaction_signature: str) -> bool:
        return (
            self.db.query(Trade.id)
            .filter(Trade.transaction_signature == transaction_signature)
            .first()
            is not None
        )

    def add_trade(
        self,
        user_id: str,
        volume_usd: Decimal,
        transaction_signature: Optional[str] = None,
        input_mint: Optional[str] = None,
        output_mint: Optional[str] = None,
    ) -> Trade:
        """
        거래 기록 추가 (flush 만 수행)

        Raises:
            IntegrityError: 같은 transaction_signature 가 이미 있을 때
        """
        trade = Trade(
            user_id=user_id,
            transaction_signature=transaction_signature,
            volume_usd=volume_usd,
            input_mint=input_mint,
            output_mint=output_mint,
            created_at=utcnow(),
        )
        self.db.add(trade)
        self.db.flush()
        return trade
