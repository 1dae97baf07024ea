from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from buildersapi.models.listing import ListingStatus


class RedeemableKind(str, Enum):
    ADVERTISEMENT = "advertisement"
    SERVICE_LISTING = "service_listing"
    FORECAST = "forecast"


class RedemptionQuote(BaseModel):
    """토큰 교환 가능 여부 조회 응답"""

    kind: RedeemableKind
    entity_id: int
    can_redeem: bool = Field(..., description="교환 가능 여부")
    cost: int = Field(..., description="필요 토큰")
    balance: int = Field(..., description="현재 잔액")
    status: ListingStatus = Field(..., description="엔티티 현재 상태")


class RedemptionResponse(BaseModel):
    """토큰 교환(활성화) 결과"""

    success: bool = True
    message: str
    kind: RedeemableKind
    entity_id: int
    status: ListingStatus
    tokens_spent: int
    new_balance: int
    transaction_id: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
