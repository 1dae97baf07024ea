"""
관리자 API 라우터

- POST /admin/tokens/adjust: 토큰 조정 (양수: 추가, 음수: 차감)
- GET /admin/tokens/integrity/{user_id}: 사용자 원장 정합성 검증
- GET /admin/tokens/integrity: 전체 원장 정합성 검증
- GET /admin/rewards/users/{user_id}: 사용자 보상 상세
- POST /admin/rewards/users/{user_id}: pause / resume / flag / unflag / cancelPending

모든 엔드포인트는 admin 또는 super_admin 역할이 필요합니다.
"""

from fastapi import APIRouter, Depends, Path
from dependency_injector.wiring import inject, Provide

from buildersapi.core.auth_middleware import require_admin
from buildersapi.containers import Container
from buildersapi.schemas.rewards import (
    AdminRewardActionRequest,
    AdminRewardActionResponse,
    UserRewardsDetailResponse,
)
from buildersapi.schemas.tokens import (
    AdminTokenAdjustmentRequest,
    TokenIntegrityResponse,
    TokenTransactionResult,
)
from buildersapi.schemas.user import User as UserSchema
from buildersapi.services.reward_service import RewardService
from buildersapi.services.token_service import TokenService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/tokens/adjust", response_model=TokenTransactionResult)
@inject
async def adjust_user_tokens(
    request: AdminTokenAdjustmentRequest,
    admin_user: UserSchema = Depends(require_admin),
    token_service: TokenService = Depends(Provide[Container.services.token_service]),
) -> TokenTransactionResult:
    return token_service.admin_adjust(
        admin_id=admin_user.id,
        user_id=request.user_id,
        amount=request.amount,
        reason=request.reason,
    )


@router.get("/tokens/integrity/{user_id}", response_model=TokenIntegrityResponse)
@inject
async def verify_user_token_integrity(
    user_id: int = Path(..., ge=1),
    admin_user: UserSchema = Depends(require_admin),
    token_service: TokenService = Depends(Provide[Container.services.token_service]),
) -> TokenIntegrityResponse:
    return token_service.verify_user_integrity(user_id)


@router.get("/tokens/integrity", response_model=TokenIntegrityResponse)
@inject
async def verify_global_token_integrity(
    admin_user: UserSchema = Depends(require_admin),
    token_service: TokenService = Depends(Provide[Container.services.token_service]),
) -> TokenIntegrityResponse:
    return token_service.verify_global_integrity()


@router.get("/rewards/users/{user_id}", response_model=UserRewardsDetailResponse)
@inject
async def get_user_rewards(
    user_id: int = Path(..., ge=1),
    admin_user: UserSchema = Depends(require_admin),
    reward_service: RewardService = Depends(Provide[Container.services.reward_service]),
) -> UserRewardsDetailResponse:
    return reward_service.get_user_rewards_detail(user_id)


@router.post("/rewards/users/{user_id}", response_model=AdminRewardActionResponse)
@inject
async def apply_user_reward_action(
    request: AdminRewardActionRequest,
    user_id: int = Path(..., ge=1),
    admin_user: UserSchema = Depends(require_admin),
    reward_service: RewardService = Depends(Provide[Container.services.reward_service]),
) -> AdminRewardActionResponse:
    return reward_service.apply_admin_action(user_id, request.action, request.reason)
