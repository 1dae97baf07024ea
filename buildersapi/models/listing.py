"""
토큰으로 활성화 가능한 엔티티(광고, 서비스 리스팅, 예측) 모델

세 엔티티 모두 동일한 라이프사이클(ListingStatus)과 활성화 기간 필드를 공유합니다.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from buildersapi.models.base import BaseModel, BigIntPK


class ListingStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"


class ForecastPosition(str, enum.Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class RedeemableMixin:
    """소유자, 상태, 활성 기간 - 토큰 교환 워크플로우가 사용하는 공통 컬럼"""

    @declared_attr
    def user_id(cls) -> Mapped[int]:
        return mapped_column(
            BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        )

    @declared_attr
    def status(cls) -> Mapped[ListingStatus]:
        return mapped_column(
            Enum(ListingStatus, name="listing_status"),
            default=ListingStatus.DRAFT,
            nullable=False,
        )

    @declared_attr
    def start_date(cls) -> Mapped[Optional[datetime]]:
        return mapped_column(DateTime(timezone=True), nullable=True)

    @declared_attr
    def end_date(cls) -> Mapped[Optional[datetime]]:
        return mapped_column(DateTime(timezone=True), nullable=True)

    # Stripe 결제 대기 중인 checkout session 참조
    @declared_attr
    def stripe_session_id(cls) -> Mapped[Optional[str]]:
        return mapped_column(Text, nullable=True)

    @declared_attr
    def amount_paid_tokens(cls) -> Mapped[int]:
        return mapped_column(BigInteger, default=0, nullable=False)


class Advertisement(RedeemableMixin, BaseModel):
    __tablename__ = "advertisements"
    __table_args__ = (Index("idx_advertisements_status_end", "status", "end_date"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    link_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class AdPricingConfig(BaseModel):
    """광고 가격 티어 싱글톤 - version 컬럼으로 compare-and-swap 갱신"""

    __tablename__ = "ad_pricing_config"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default="singleton")
    current_tier: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class ServiceListing(RedeemableMixin, BaseModel):
    __tablename__ = "service_listings"
    __table_args__ = (Index("idx_service_listings_status_end", "status", "end_date"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    price_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class ForecastTarget(BaseModel):
    """예측 대상 창업자 - MRR 예측 허용 여부와 스테이크 한도"""

    __tablename__ = "forecast_targets"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    min_stake: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    max_stake: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    current_mrr: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)


class Forecast(RedeemableMixin, BaseModel):
    __tablename__ = "forecasts"
    __table_args__ = (
        Index("idx_forecasts_user_target", "user_id", "target_id"),
        Index("idx_forecasts_status_end", "status", "end_date"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    target_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("forecast_targets.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    position: Mapped[ForecastPosition] = mapped_column(
        Enum(ForecastPosition, name="forecast_position"), nullable=False
    )
    target_mrr: Mapped[int] = mapped_column(BigInteger, nullable=False)
    coins_staked: Mapped[int] = mapped_column(Integer, nullable=False)
