from fastapi import APIRouter, Depends
from dependency_injector.wiring import inject, Provide

from buildersapi.core.auth_middleware import verify_cron_secret
from buildersapi.containers import Container
from buildersapi.schemas.cron import ExpireListingsResponse, ProTokenGrantResponse
from buildersapi.services.cron_service import CronService

router = APIRouter(
    prefix="/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)]
)


@router.post("/expire-listings", response_model=ExpireListingsResponse)
@inject
async def expire_listings(
    cron_service: CronService = Depends(Provide[Container.services.cron_service]),
) -> ExpireListingsResponse:
    """기간이 지난 광고/서비스 리스팅/예측 만료 처리"""
    return cron_service.expire_listings()


@router.post("/grant-pro-tokens", response_model=ProTokenGrantResponse)
@inject
async def grant_pro_tokens(
    cron_service: CronService = Depends(Provide[Container.services.cron_service]),
) -> ProTokenGrantResponse:
    """Pro 구독자 월간 토큰 지급 (같은 달 재실행 시 중복 지급 없음)"""
    return cron_service.grant_pro_tokens()
