from sqlalchemy.orm import Session

from buildersapi.config import Settings
from buildersapi.core.exceptions import BusinessLogicError
from buildersapi.models.listing import ForecastPosition, ListingStatus
from buildersapi.repositories.listing_repository import (
    ForecastRepository,
    ForecastTargetRepository,
)
from buildersapi.schemas.listing import ForecastCreateRequest, ForecastResponse
from buildersapi.schemas.redemption import RedeemableKind, RedemptionResponse
from buildersapi.services.redeemables import validate_forecast_target
from buildersapi.services.redemption_service import RedemptionService
import logging

logger = logging.getLogger(__name__)


class ForecastService:
    """창업자 MRR 예측 생성 및 토큰 스테이크"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.forecast_repo = ForecastRepository(db)
        self.target_repo = ForecastTargetRepository(db)
        self.redemption_service = RedemptionService(db, settings)

    def create_draft(
        self, user_id: int, request: ForecastCreateRequest, commit: bool = True
    ) -> ForecastResponse:
        """DRAFT 예측 생성

        검증:
        1. 대상이 존재하고 활성 상태, 자기 자신은 예측 불가, 스테이크가 범위 안
        2. 포지션은 LONG/SHORT
        3. 같은 대상에 DRAFT/ACTIVE 예측이 없어야 함
        """
        validate_forecast_target(
            self.target_repo.get_by_id(request.target_id),
            request.target_id,
            user_id,
            request.coins_staked,
            self.settings,
        )

        try:
            position = ForecastPosition(request.position)
        except ValueError:
            raise BusinessLogicError(
                error_code="FORECAST_POSITION",
                message="Position must be LONG or SHORT",
                details={"position": str(request.position)},
            )

        if self.forecast_repo.has_open_forecast(user_id, request.target_id):
            raise BusinessLogicError(
                error_code="FORECAST_EXISTS",
                message="You already have an open forecast for this company",
                details={"target_id": request.target_id},
            )

        forecast = self.forecast_repo.create(
            commit=commit,
            user_id=user_id,
            target_id=request.target_id,
            title=f"{position.value} ${request.target_mrr / 100:,.2f} MRR",
            position=position,
            target_mrr=request.target_mrr,
            coins_staked=request.coins_staked,
            status=ListingStatus.DRAFT,
        )
        logger.info(
            f"User {user_id} drafted {position.value} forecast {forecast.id} "
            f"on target {request.target_id} ({request.coins_staked} tokens)"
        )
        return forecast

    def place(self, user_id: int, request: ForecastCreateRequest) -> RedemptionResponse:
        """예측 생성과 토큰 스테이크를 한 번에 처리

        토큰 차감이 실패하면 생성한 DRAFT 도 함께 롤백됩니다.
        """
        try:
            draft = self.create_draft(user_id, request, commit=False)
        except Exception:
            self.db.rollback()
            raise
        return self.redemption_service.activate_with_tokens(
            RedeemableKind.FORECAST, draft.id, user_id
        )
