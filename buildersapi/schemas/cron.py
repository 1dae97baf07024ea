"""Pydantic models for cron-triggered sweeps."""

from datetime import datetime
from pydantic import BaseModel


class ExpireListingsResponse(BaseModel):
    success: bool = True
    expired_advertisements: int
    expired_service_listings: int
    expired_forecasts: int
    timestamp: datetime

    @property
    def total_expired(self) -> int:
        return (
            self.expired_advertisements
            + self.expired_service_listings
            + self.expired_forecasts
        )


class ProTokenGrantResponse(BaseModel):
    success: bool = True
    period: str
    granted: int
    skipped: int
    tokens_per_user: int
    timestamp: datetime
