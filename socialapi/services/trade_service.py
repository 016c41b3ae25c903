import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialapi.config import Settings
from socialapi.core.point_actions import PointActionType
from socialapi.repositories.trade_repository import TradeRepository
from socialapi.repositories.user_repository import UserRepository
from socialapi.schemas.og import TradeCompleteRequest, TradeCompleteResponse
from socialapi.schemas.points import AwardStatus
from socialapi.services.og_service import OGService, validate_trade_volume
from socialapi.services.point_service import PointService

logger = logging.getLogger(__name__)


class TradeService:
    """스왑 완료 처리 - 거래 포인트, 누적 거래량, OG, 거래량 마일스톤"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        point_service: PointService,
        og_service: OGService,
    ):
        self.db = db
        self.settings = settings
        self.point_service = point_service
        self.og_service = og_service
        self.user_repo = UserRepository(db)
        self.trade_repo = TradeRepository(db)

    def record_trade(self, request: TradeCompleteRequest) -> TradeCompleteResponse:
        """
        스왑 완료 기록

        - 미가입 사용자의 거래는 성공으로 응답하되 거래량을 기록하지 않음
        - 같은 transactionSignature 는 trades 유니크 제약으로 한 번만 반영
          (TRADE_COMPLETED 일일 한도와 무관)
        - 거래 기록, TRADE_COMPLETED 지급, 거래량 증가는 하나의 커밋으로 처리
        - 마일스톤 지급과 업적/OG 평가는 커밋 이후 best-effort
        """
        amount = validate_trade_volume(request.trade_volume_usd)
        signature = request.transaction_signature

        user = None
        if request.privy_did:
            user = self.user_repo.get_by_id(request.privy_did)
        if user is None and request.wallet_address:
            user = self.user_repo.get_by_wallet(request.wallet_address)

        if user is None:
            logger.info(
                f"Trade from unregistered user ignored (privyDid={request.privy_did}, wallet={request.wallet_address})"
            )
            return TradeCompleteResponse(
                volume_updated=False,
                message="User not registered; trade volume not tracked",
            )

        if signature and self.trade_repo.signature_exists(signature):
            logger.info(f"Duplicate trade {signature} for user {user.privy_did}")
            return self._duplicate(user.privy_did)

        metadata = {
            "transactionSignature": signature,
            "volumeUsd": request.trade_volume_usd,
            "inputMint": request.input_mint,
            "outputMint": request.output_mint,
        }
        previous = Decimal(str(user.total_trading_volume_usd))

        try:
            self.trade_repo.add_trade(
                user.privy_did,
                amount,
                transaction_signature=signature,
                input_mint=request.input_mint,
                output_mint=request.output_mint,
            )
            award = self.point_service.award_points(
                user.privy_did,
                PointActionType.TRADE_COMPLETED,
                {k: v for k, v in metadata.items() if v is not None},
                run_hooks=False,
                commit=False,
            )
            if award.status == AwardStatus.DUPLICATE:
                # 원장에 이미 같은 서명의 지급이 있으면 이미 반영된 거래
                self.db.rollback()
                return self._duplicate(user.privy_did)

            new_total = self.user_repo.add_trading_volume(user.privy_did, amount, commit=False)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info(f"Duplicate trade {signature} for user {user.privy_did}: {str(e.orig)}")
            return self._duplicate(user.privy_did)
        except Exception:
            self.db.rollback()
            raise

        points_awarded = award.points_awarded
        milestones = self.og_service.milestones_crossed(previous, new_total)
        for milestone in milestones:
            try:
                milestone_award = self.point_service.award_points(
                    user.privy_did,
                    PointActionType.TRADE_VOLUME_MILESTONE,
                    {"milestone": milestone},
                    description=f"Trading volume milestone: ${milestone:,}",
                    run_hooks=False,
                )
                points_awarded += milestone_award.points_awarded
            except Exception as e:
                logger.error(
                    f"Milestone {milestone} award failed for user {user.privy_did}: {str(e)}",
                    exc_info=True,
                )
                self.db.rollback()

        self.point_service.run_post_commit_hooks(user.privy_did)
        current = self.user_repo.get_by_id(user.privy_did)
        logger.info(
            f"Trading volume for user {user.privy_did}: {previous} -> {new_total} (isOG={current.is_og})"
        )

        return TradeCompleteResponse(
            volume_updated=True,
            message="Trade recorded",
            user_id=user.privy_did,
            points_awarded=points_awarded,
            new_total_volume=float(new_total),
            og_granted=current.is_og and not user.is_og,
            og_reason=current.og_reason,
            milestones_reached=milestones,
        )

    def _duplicate(self, user_id: str) -> TradeCompleteResponse:
        return TradeCompleteResponse(
            volume_updated=False,
            duplicate=True,
            user_id=user_id,
            message="Trade already recorded",
        )
