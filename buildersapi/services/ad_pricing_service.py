"""
광고 가격 티어 관리

플랫폼 광고 슬롯이 모두 찰 때마다 티어가 1씩 오르고, 가격은 티어마다 2배가 됩니다.
(tier 0 = $5, tier 1 = $10, tier 2 = $20 ...) 티어는 내려가지 않습니다.
"""

from sqlalchemy.orm import Session

from buildersapi.config import Settings
from buildersapi.core.exceptions import AdSoldOutError
from buildersapi.repositories.ad_pricing_repository import AdPricingRepository
from buildersapi.repositories.listing_repository import AdvertisementRepository
from buildersapi.schemas.listing import AdPricingResponse
import logging

logger = logging.getLogger(__name__)


class AdPricingService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.pricing_repo = AdPricingRepository(db)
        self.ad_repo = AdvertisementRepository(db)

    def price_cents(self, tier: int) -> int:
        return self.settings.AD_BASE_PRICE_CENTS * 2 ** tier

    def cents_to_tokens(self, cents: int) -> int:
        # 반올림 (0.5 이상 올림)
        return (cents * self.settings.TOKENS_PER_DOLLAR + 50) // 100

    def cost_tokens(self, tier: int) -> int:
        return self.cents_to_tokens(self.price_cents(tier))

    def get_current_tier(self, commit: bool = False) -> int:
        """현재 티어. 설정 행이 없으면 지금까지 활성화된 광고 수로 초기값을 정해 생성"""
        state = self.pricing_repo.get_state()
        if state is None:
            initial_tier = (
                self.ad_repo.count_ever_activated() // self.settings.AD_SLOT_CAPACITY
            )
            state = self.pricing_repo.get_or_create(initial_tier)
            logger.info(f"Seeded ad pricing config at tier {state.current_tier}")
            if commit:
                self.db.commit()
        return state.current_tier

    def ensure_slot_available(self) -> None:
        active = self.ad_repo.count_active()
        if active >= self.settings.AD_SLOT_CAPACITY:
            raise AdSoldOutError(capacity=self.settings.AD_SLOT_CAPACITY, active=active)

    def advance_tier_if_full(self) -> bool:
        """활성 광고가 슬롯 수에 도달하면 티어를 1 올림 (커밋하지 않음)

        version 비교로 갱신하며, 경쟁에서 지면 재시도하지 않습니다.
        """
        active = self.ad_repo.count_active()
        if active < self.settings.AD_SLOT_CAPACITY:
            return False

        state = self.pricing_repo.get_state()
        if state is None:
            return False

        advanced = self.pricing_repo.compare_and_advance(state.version)
        if advanced:
            logger.info(
                f"Ad slots full ({active}/{self.settings.AD_SLOT_CAPACITY}); "
                f"pricing tier {state.current_tier} -> {state.current_tier + 1}"
            )
        else:
            logger.info("Ad pricing tier already advanced by a concurrent activation")
        return advanced

    def get_pricing(self) -> AdPricingResponse:
        tier = self.get_current_tier(commit=True)
        active = self.ad_repo.count_active()
        capacity = self.settings.AD_SLOT_CAPACITY
        return AdPricingResponse(
            current_tier=tier,
            price_cents=self.price_cents(tier),
            cost_tokens=self.cost_tokens(tier),
            capacity=capacity,
            active_slots=active,
            available_slots=max(0, capacity - active),
            is_sold_out=active >= capacity,
        )
