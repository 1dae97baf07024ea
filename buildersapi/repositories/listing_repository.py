"""
토큰으로 활성화 가능한 엔티티(광고, 서비스 리스팅, 예측) 리포지토리

활성화는 상태 조건부 UPDATE 로 수행되어, 같은 엔티티를 동시에 두 번
활성화하려는 요청 중 하나만 성공합니다.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from buildersapi.models.listing import (
    Advertisement as AdvertisementModel,
    Forecast as ForecastModel,
    ForecastTarget as ForecastTargetModel,
    ListingStatus,
    ServiceListing as ServiceListingModel,
)
from buildersapi.repositories.base import BaseRepository, SchemaType, T
from buildersapi.schemas.listing import (
    AdvertisementResponse,
    ForecastResponse,
    ForecastTargetResponse,
    ServiceListingResponse,
)

# 이미 활성화되었거나 만료된 엔티티는 다시 토큰으로 활성화할 수 없음
NON_REDEEMABLE_STATUSES = (ListingStatus.ACTIVE, ListingStatus.EXPIRED)


class RedeemableRepository(BaseRepository[T, SchemaType]):
    """활성화/만료 처리 공통 쿼리"""

    def activate(
        self,
        entity_id: int,
        start_date: datetime,
        end_date: datetime,
        amount_paid_tokens: int,
        commit: bool = False,
    ) -> Optional[SchemaType]:
        """ACTIVE 로 전환. 이미 ACTIVE/EXPIRED 면 None (아무것도 변경하지 않음)"""
        updated = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.id == entity_id,
                self.model_class.status.notin_(NON_REDEEMABLE_STATUSES),
            )
            .update(
                {
                    self.model_class.status: ListingStatus.ACTIVE,
                    self.model_class.start_date: start_date,
                    self.model_class.end_date: end_date,
                    self.model_class.stripe_session_id: None,
                    self.model_class.amount_paid_tokens: amount_paid_tokens,
                },
                synchronize_session=False,
            )
        )
        if updated == 0:
            return None

        if commit:
            self.db.commit()
        return self._to_schema(self._query_by_id(entity_id))

    def expire_due(self, now: datetime, commit: bool = True) -> int:
        """기간이 지난 ACTIVE 엔티티를 EXPIRED 로 전환하고 건수 반환"""
        self._ensure_clean_session()
        try:
            expired = (
                self.db.query(self.model_class)
                .filter(
                    self.model_class.status == ListingStatus.ACTIVE,
                    self.model_class.end_date.isnot(None),
                    self.model_class.end_date < now,
                )
                .update(
                    {self.model_class.status: ListingStatus.EXPIRED},
                    synchronize_session=False,
                )
            )
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return expired

    def count_active(self, now: Optional[datetime] = None) -> int:
        """현재 노출 중인 엔티티 수 (기간이 지났지만 아직 만료 처리 전인 것은 제외)"""
        now = now or datetime.now(timezone.utc)
        self._ensure_clean_session()
        return (
            self._filtered({"status": ListingStatus.ACTIVE})
            .filter(
                self.model_class.start_date <= now,
                self.model_class.end_date > now,
            )
            .count()
        )


class AdvertisementRepository(
    RedeemableRepository[AdvertisementModel, AdvertisementResponse]
):
    def __init__(self, db: Session):
        super().__init__(AdvertisementModel, AdvertisementResponse, db)

    def count_ever_activated(self) -> int:
        """한 번이라도 활성화된 광고 수 (가격 티어 초기값 계산용)"""
        self._ensure_clean_session()
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.start_date.isnot(None))
            .count()
        )


class ServiceListingRepository(
    RedeemableRepository[ServiceListingModel, ServiceListingResponse]
):
    def __init__(self, db: Session):
        super().__init__(ServiceListingModel, ServiceListingResponse, db)


class ForecastRepository(RedeemableRepository[ForecastModel, ForecastResponse]):
    def __init__(self, db: Session):
        super().__init__(ForecastModel, ForecastResponse, db)

    def has_open_forecast(self, user_id: int, target_id: int) -> bool:
        """같은 대상에 DRAFT/ACTIVE 예측이 이미 있는지"""
        self._ensure_clean_session()
        return (
            self.db.query(self.model_class.id)
            .filter(
                self.model_class.user_id == user_id,
                self.model_class.target_id == target_id,
                self.model_class.status.in_(
                    (ListingStatus.DRAFT, ListingStatus.ACTIVE)
                ),
            )
            .first()
            is not None
        )


class ForecastTargetRepository(
    BaseRepository[ForecastTargetModel, ForecastTargetResponse]
):
    def __init__(self, db: Session):
        super().__init__(ForecastTargetModel, ForecastTargetResponse, db)
