from fastapi import APIRouter, Depends, Path
from dependency_injector.wiring import inject, Provide

from buildersapi.core.auth_middleware import get_current_active_user
from buildersapi.containers import Container
from buildersapi.middleware.rate_limit import rate_limit
from buildersapi.schemas.listing import (
    ServiceListingCreateRequest,
    ServiceListingResponse,
)
from buildersapi.schemas.redemption import (
    RedeemableKind,
    RedemptionQuote,
    RedemptionResponse,
)
from buildersapi.schemas.user import User as UserSchema
from buildersapi.services.listing_service import ListingService
from buildersapi.services.redemption_service import RedemptionService

router = APIRouter(prefix="/services", tags=["services"])


@router.post(
    "",
    response_model=ServiceListingResponse,
    dependencies=[Depends(rate_limit("api"))],
)
@inject
async def create_service_listing(
    request: ServiceListingCreateRequest,
    current_user: UserSchema = Depends(get_current_active_user),
    listing_service: ListingService = Depends(Provide[Container.services.listing_service]),
) -> ServiceListingResponse:
    return listing_service.create_service_listing(current_user.id, request)


@router.get("/{listing_id}/redeem", response_model=RedemptionQuote)
@inject
async def check_service_redemption(
    listing_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(get_current_active_user),
    redemption_service: RedemptionService = Depends(
        Provide[Container.services.redemption_service]
    ),
) -> RedemptionQuote:
    return redemption_service.get_redemption_quote(
        RedeemableKind.SERVICE_LISTING, listing_id, current_user.id
    )


@router.post(
    "/{listing_id}/redeem",
    response_model=RedemptionResponse,
    dependencies=[Depends(rate_limit("redeem"))],
)
@inject
async def redeem_service_listing(
    listing_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(get_current_active_user),
    redemption_service: RedemptionService = Depends(
        Provide[Container.services.redemption_service]
    ),
) -> RedemptionResponse:
    """토큰으로 서비스 리스팅 활성화 (고정 비용, 90일)"""
    return redemption_service.activate_with_tokens(
        RedeemableKind.SERVICE_LISTING, listing_id, current_user.id
    )
