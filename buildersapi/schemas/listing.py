from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from buildersapi.models.listing import ForecastPosition, ListingStatus


class AdvertisementCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200, description="광고 제목")
    description: Optional[str] = Field(None, max_length=1000)
    link_url: Optional[str] = Field(None, max_length=2048)


class AdvertisementResponse(BaseModel):
    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    link_url: Optional[str] = None
    status: ListingStatus
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    stripe_session_id: Optional[str] = None
    amount_paid_tokens: int = 0

    class Config:
        from_attributes = True


class AdPricingResponse(BaseModel):
    """현재 광고 가격 티어 정보"""

    current_tier: int = Field(..., description="현재 가격 티어")
    price_cents: int = Field(..., description="현재 티어 가격 (센트)")
    cost_tokens: int = Field(..., description="토큰 환산 가격")
    capacity: int = Field(..., description="플랫폼 광고 슬롯 수")
    active_slots: int = Field(..., description="현재 활성 광고 수")
    available_slots: int = Field(..., description="남은 슬롯 수")
    is_sold_out: bool = Field(..., description="매진 여부")


class ServiceListingCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = Field(None, max_length=50)
    price_cents: int = Field(0, ge=0)


class ServiceListingResponse(BaseModel):
    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    price_cents: int = 0
    status: ListingStatus
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    stripe_session_id: Optional[str] = None
    amount_paid_tokens: int = 0

    class Config:
        from_attributes = True


class ForecastCreateRequest(BaseModel):
    """MRR 예측 요청"""

    target_id: int = Field(..., gt=0, description="예측 대상 ID")
    position: ForecastPosition = Field(..., description="LONG 또는 SHORT")
    target_mrr: int = Field(..., ge=0, description="예측 MRR (센트)")
    coins_staked: int = Field(..., ge=1, description="스테이크할 토큰 수")


class ForecastResponse(BaseModel):
    id: int
    user_id: int
    target_id: int
    title: str
    position: ForecastPosition
    target_mrr: int
    coins_staked: int
    status: ListingStatus
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    amount_paid_tokens: int = 0

    class Config:
        from_attributes = True


class ForecastTargetResponse(BaseModel):
    id: int
    user_id: int
    is_active: bool
    min_stake: int
    max_stake: int
    current_mrr: int

    class Config:
        from_attributes = True
