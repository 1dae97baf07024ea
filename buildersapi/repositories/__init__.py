# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .token_repository import TokenRepository
from .ad_pricing_repository import AdPricingRepository
from .listing_repository import (
    AdvertisementRepository,
    ForecastRepository,
    ForecastTargetRepository,
    ServiceListingRepository,
)
from .rewards_repository import RewardsRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "TokenRepository",
    "AdPricingRepository",
    "AdvertisementRepository",
    "ServiceListingRepository",
    "ForecastRepository",
    "ForecastTargetRepository",
    "RewardsRepository",
]
