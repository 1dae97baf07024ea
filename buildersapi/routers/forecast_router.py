from fastapi import APIRouter, Depends, Path
from dependency_injector.wiring import inject, Provide

from buildersapi.core.auth_middleware import get_current_active_user
from buildersapi.containers import Container
from buildersapi.middleware.rate_limit import rate_limit
from buildersapi.schemas.listing import ForecastCreateRequest, ForecastResponse
from buildersapi.schemas.redemption import (
    RedeemableKind,
    RedemptionQuote,
    RedemptionResponse,
)
from buildersapi.schemas.user import User as UserSchema
from buildersapi.services.forecast_service import ForecastService
from buildersapi.services.redemption_service import RedemptionService

router = APIRouter(prefix="/forecasts", tags=["forecasts"])


@router.post(
    "",
    response_model=ForecastResponse,
    dependencies=[Depends(rate_limit("api"))],
)
@inject
async def create_forecast(
    request: ForecastCreateRequest,
    current_user: UserSchema = Depends(get_current_active_user),
    forecast_service: ForecastService = Depends(
        Provide[Container.services.forecast_service]
    ),
) -> ForecastResponse:
    """예측 초안 생성 (토큰 차감 없음)"""
    return forecast_service.create_draft(current_user.id, request)


@router.post(
    "/place",
    response_model=RedemptionResponse,
    dependencies=[Depends(rate_limit("redeem"))],
)
@inject
async def place_forecast(
    request: ForecastCreateRequest,
    current_user: UserSchema = Depends(get_current_active_user),
    forecast_service: ForecastService = Depends(
        Provide[Container.services.forecast_service]
    ),
) -> RedemptionResponse:
    """예측 생성과 토큰 스테이크를 한 번에 처리"""
    return forecast_service.place(current_user.id, request)


@router.get("/{forecast_id}/redeem", response_model=RedemptionQuote)
@inject
async def check_forecast_redemption(
    forecast_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(get_current_active_user),
    redemption_service: RedemptionService = Depends(
        Provide[Container.services.redemption_service]
    ),
) -> RedemptionQuote:
    return redemption_service.get_redemption_quote(
        RedeemableKind.FORECAST, forecast_id, current_user.id
    )


@router.post(
    "/{forecast_id}/redeem",
    response_model=RedemptionResponse,
    dependencies=[Depends(rate_limit("redeem"))],
)
@inject
async def redeem_forecast(
    forecast_id: int = Path(..., ge=1),
    current_user: UserSchema = Depends(get_current_active_user),
    redemption_service: RedemptionService = Depends(
        Provide[Container.services.redemption_service]
    ),
) -> RedemptionResponse:
    """DRAFT 예측에 토큰을 스테이크하여 활성화"""
    return redemption_service.activate_with_tokens(
        RedeemableKind.FORECAST, forecast_id, current_user.id
    )
