"""
토큰 교환 대상 엔티티별 어댑터

RedemptionService 는 엔티티 종류를 모르고 이 어댑터만 사용합니다.
어댑터는 리포지토리, 거래 유형, 비용, 활성 기간, 거래 설명, 부가 정보와
활성화 전후 훅을 제공합니다.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from buildersapi.config import Settings
from buildersapi.core.exceptions import (
    BusinessLogicError,
    InvalidAmountError,
    NotFoundError,
)
from buildersapi.models.tokens import TokenTransactionType
from buildersapi.repositories.listing_repository import (
    AdvertisementRepository,
    ForecastRepository,
    ForecastTargetRepository,
    RedeemableRepository,
    ServiceListingRepository,
)
from buildersapi.schemas.listing import ForecastTargetResponse
from buildersapi.schemas.redemption import RedeemableKind
from buildersapi.services.ad_pricing_service import AdPricingService


def validate_forecast_target(
    target: Optional[ForecastTargetResponse],
    target_id: int,
    user_id: int,
    coins_staked: int,
    settings: Settings,
) -> None:
    """예측 대상 검증 - 존재, 활성 상태, 본인 여부, 스테이크 범위"""
    if not target:
        raise NotFoundError("Forecast target not found", {"target_id": target_id})
    if not target.is_active:
        raise BusinessLogicError(
            error_code="FORECAST_TARGET_INACTIVE",
            message="This company is not accepting forecasts",
            details={"target_id": target_id},
        )
    if target.user_id == user_id:
        raise BusinessLogicError(
            error_code="FORECAST_SELF",
            message="You cannot forecast your own company",
        )

    min_stake = max(target.min_stake, settings.MIN_FORECAST_COINS)
    max_stake = min(target.max_stake, settings.MAX_FORECAST_COINS)
    if not min_stake <= coins_staked <= max_stake:
        raise InvalidAmountError(
            coins_staked, f"Stake must be between {min_stake} and {max_stake} tokens"
        )


class Redeemable(ABC):
    kind: RedeemableKind
    transaction_type: TokenTransactionType
    label: str

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    @property
    @abstractmethod
    def repository(self) -> RedeemableRepository: ...

    @abstractmethod
    def cost(self, entity) -> int: ...

    @abstractmethod
    def duration(self, entity) -> timedelta: ...

    def description(self, entity) -> str:
        return f"Unlocked {self.label}: {entity.title}"

    def metadata(self, entity) -> Dict[str, Any]:
        return {"entity_id": entity.id, "kind": self.kind.value, "title": entity.title}

    def before_spend(self, entity) -> None:
        """토큰 차감 전 추가 검증"""

    def after_activate(self, entity) -> None:
        """활성화 직후, 같은 트랜잭션 안에서 실행"""


class AdvertisementRedeemable(Redeemable):
    kind = RedeemableKind.ADVERTISEMENT
    transaction_type = TokenTransactionType.AD_REDEMPTION
    label = "advertisement"

    def __init__(self, db: Session, settings: Settings):
        super().__init__(db, settings)
        self._repository = AdvertisementRepository(db)
        self.pricing = AdPricingService(db, settings)

    @property
    def repository(self) -> AdvertisementRepository:
        return self._repository

    def cost(self, entity) -> int:
        return self.pricing.cost_tokens(self.pricing.get_current_tier())

    def duration(self, entity) -> timedelta:
        return timedelta(days=self.settings.SIDEBAR_AD_DURATION_DAYS)

    def before_spend(self, entity) -> None:
        self.pricing.ensure_slot_available()

    def after_activate(self, entity) -> None:
        self.pricing.advance_tier_if_full()


class ServiceListingRedeemable(Redeemable):
    kind = RedeemableKind.SERVICE_LISTING
    transaction_type = TokenTransactionType.SERVICE_REDEMPTION
    label = "service listing"

    def __init__(self, db: Session, settings: Settings):
        super().__init__(db, settings)
        self._repository = ServiceListingRepository(db)

    @property
    def repository(self) -> ServiceListingRepository:
        return self._repository

    def cost(self, entity) -> int:
        return self.settings.SERVICE_REDEMPTION_COST

    def duration(self, entity) -> timedelta:
        return timedelta(days=self.settings.SERVICE_LISTING_DURATION_DAYS)


class ForecastRedeemable(Redeemable):
    kind = RedeemableKind.FORECAST
    transaction_type = TokenTransactionType.FORECAST_PLACED
    label = "forecast"

    def __init__(self, db: Session, settings: Settings):
        super().__init__(db, settings)
        self._repository = ForecastRepository(db)
        self.target_repo = ForecastTargetRepository(db)

    @property
    def repository(self) -> ForecastRepository:
        return self._repository

    def cost(self, entity) -> int:
        return entity.coins_staked

    def duration(self, entity) -> timedelta:
        return timedelta(days=self.settings.FORECAST_DURATION_DAYS)

    def before_spend(self, entity) -> None:
        # 초안 작성 이후 대상이 비활성화되었거나 스테이크 범위가 바뀌었을 수 있음
        validate_forecast_target(
            self.target_repo.get_by_id(entity.target_id),
            entity.target_id,
            entity.user_id,
            entity.coins_staked,
            self.settings,
        )

    def description(self, entity) -> str:
        return f"Placed {entity.position.value} forecast: {entity.title}"

    def metadata(self, entity) -> Dict[str, Any]:
        data = super().metadata(entity)
        data["target_id"] = entity.target_id
        data["position"] = entity.position.value
        return data


REDEEMABLES = {
    RedeemableKind.ADVERTISEMENT: AdvertisementRedeemable,
    RedeemableKind.SERVICE_LISTING: ServiceListingRedeemable,
    RedeemableKind.FORECAST: ForecastRedeemable,
}


def get_redeemable(kind: RedeemableKind, db: Session, settings: Settings) -> Redeemable:
    return REDEEMABLES[RedeemableKind(kind)](db, settings)
