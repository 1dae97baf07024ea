from sqlalchemy.orm import Session

from buildersapi.config import Settings
from buildersapi.models.listing import ListingStatus
from buildersapi.repositories.listing_repository import (
    AdvertisementRepository,
    ServiceListingRepository,
)
from buildersapi.schemas.listing import (
    AdvertisementCreateRequest,
    AdvertisementResponse,
    ServiceListingCreateRequest,
    ServiceListingResponse,
)
import logging

logger = logging.getLogger(__name__)


class ListingService:
    """광고/서비스 리스팅 초안 생성 - 활성화는 RedemptionService 가 담당"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.ad_repo = AdvertisementRepository(db)
        self.service_repo = ServiceListingRepository(db)

    def create_advertisement(
        self, user_id: int, request: AdvertisementCreateRequest
    ) -> AdvertisementResponse:
        ad = self.ad_repo.create(
            user_id=user_id,
            title=request.title,
            description=request.description,
            link_url=request.link_url,
            status=ListingStatus.DRAFT,
        )
        logger.info(f"User {user_id} created advertisement draft {ad.id}")
        return ad

    def create_service_listing(
        self, user_id: int, request: ServiceListingCreateRequest
    ) -> ServiceListingResponse:
        listing = self.service_repo.create(
            user_id=user_id,
            title=request.title,
            description=request.description,
            category=request.category,
            price_cents=request.price_cents,
            status=ListingStatus.DRAFT,
        )
        logger.info(f"User {user_id} created service listing draft {listing.id}")
        return listing
