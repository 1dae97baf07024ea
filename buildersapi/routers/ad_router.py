from fastapi import APIRouter, Depends, Path
from dependency_injector.wiring import inject, Provide

from buildersapi.core.auth_middleware import get_current_active_user
from buildersapi.containers import Container
from buildersapi.middleware.rate_limit import rate_limit
from buildersapi.schemas.listing import (
    AdPricingResponse,
    AdvertisementCreateRequest,
    AdvertisementResponse,
)
from buildersapi.schemas.redemption import (
    RedeemableKind,
    RedemptionQuote,
    RedemptionResponse,
)
from buildersapi.schemas.user import User as UserSchema
from buildersapi.services.ad_pricing_service import AdPricingService
from buildersapi.services.listing_service import ListingService
from buildersapi.services.redemption_service import RedemptionService

router = APIRouter(prefix="/ads", tags=["ads"])


@router.post(
    "",
    response_model=AdvertisementResponse,
    dependencies=[Depends(rate_limit("api"))],
)
@inject
async def create_advertisement(
    request: AdvertisementCreateRequest,
    current_user: UserSchema = Depends(get_current_active_user),
    listing_service: ListingService = Depends(Provide[Container.services.listing_service]),
) -> AdvertisementResponse:
    """광고 초안 생성 (DRAFT)"""
    return listing_service.create_advertisement(current_user.id, request)


@router.get("/pricing", response_model=AdPricingResponse)
@inject
async def get_ad_pricing(
    current_user: UserSchema = Depends(get_current_active_user),
    ad_pricing_service: AdPricingService = Depends(
        Provide[Container.services.ad_pricing_service]
    ),
) -> AdPricingResponse:
    """현재 광고 가격 티어와 남은 슬롯"""
    return ad_pricing_service.get_pricing()


@router.get("/{ad_id}/redeem", response_model=RedemptionQuote)
@inject
async def check_ad_redemption(
    ad_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(get_current_active_user),
    redemption_service: RedemptionService = Depends(
        Provide[Container.services.redemption_service]
    ),
) -> RedemptionQuote:
    """토큰으로 광고를 활성화할 수 있는지 확인"""
    return redemption_service.get_redemption_quote(
        RedeemableKind.ADVERTISEMENT, ad_id, current_user.id
    )


@router.post(
    "/{ad_id}/redeem",
    response_model=RedemptionResponse,
    dependencies=[Depends(rate_limit("redeem"))],
)
@inject
async def redeem_ad(
    ad_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(get_current_active_user),
    redemption_service: RedemptionService = Depends(
        Provide[Container.services.redemption_service]
    ),
) -> RedemptionResponse:
    """
    토큰으로 광고 활성화 (Stripe 결제 대신)

    HTTP Status:
        200: 활성화 성공
        400: 잔액 부족, 이미 활성/만료, 슬롯 매진
        403: 내 광고가 아님
        404: 광고 없음
    """
    return redemption_service.activate_with_tokens(
        RedeemableKind.ADVERTISEMENT, ad_id, current_user.id
    )
