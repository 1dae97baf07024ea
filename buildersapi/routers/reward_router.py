from fastapi import APIRouter, Depends
from dependency_injector.wiring import inject, Provide

from buildersapi.core.auth_middleware import get_current_active_user
from buildersapi.containers import Container
from buildersapi.schemas.rewards import PayoutResponse, UserEarningsResponse
from buildersapi.schemas.user import User as UserSchema
from buildersapi.services.reward_service import RewardService

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("/earnings", response_model=UserEarningsResponse)
@inject
async def get_my_earnings(
    current_user: UserSchema = Depends(get_current_active_user),
    reward_service: RewardService = Depends(Provide[Container.services.reward_service]),
) -> UserEarningsResponse:
    """내 크리에이터 보상 현황 (센트 단위)"""
    return reward_service.get_user_earnings(current_user.id)


@router.post("/payout", response_model=PayoutResponse)
@inject
async def request_payout(
    current_user: UserSchema = Depends(get_current_active_user),
    reward_service: RewardService = Depends(Provide[Container.services.reward_service]),
) -> PayoutResponse:
    """
    보상 지급 요청

    HTTP Status:
        200: 지급 처리
        400: 플래그/일시정지 상태이거나 최소 지급액 미만
        404: 보상 내역 없음
    """
    return reward_service.request_payout(current_user.id)
