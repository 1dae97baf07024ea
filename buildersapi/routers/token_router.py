"""
토큰 API 라우터

사용자용 엔드포인트:
- GET /tokens/balance: 내 토큰 잔액
- GET /tokens/transactions: 내 거래 내역 (최신순)
- GET /tokens/affordability/{amount}: 지불 가능 여부
- POST /tokens/gift: 다른 사용자에게 토큰 선물

모든 엔드포인트는 Bearer 토큰 인증이 필요합니다.
"""

from fastapi import APIRouter, Depends, Path, Query
from dependency_injector.wiring import inject, Provide

from buildersapi.core.auth_middleware import get_current_active_user
from buildersapi.containers import Container
from buildersapi.middleware.rate_limit import rate_limit
from buildersapi.schemas.user import User as UserSchema
from buildersapi.schemas.tokens import (
    AffordabilityResponse,
    GiftTokensRequest,
    GiftTokensResponse,
    TokenBalanceResponse,
    TokenTransactionHistoryResponse,
)
from buildersapi.services.token_service import TokenService

router = APIRouter(prefix="/tokens", tags=["tokens"])


@router.get("/balance", response_model=TokenBalanceResponse)
@inject
async def get_my_balance(
    current_user: UserSchema = Depends(get_current_active_user),
    token_service: TokenService = Depends(Provide[Container.services.token_service]),
) -> TokenBalanceResponse:
    """내 토큰 잔액 (잔액 행이 없으면 0)"""
    return token_service.get_balance_response(current_user.id)


@router.get("/transactions", response_model=TokenTransactionHistoryResponse)
@inject
async def get_my_transactions(
    limit: int = Query(20, ge=1, le=100, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="오프셋"),
    current_user: UserSchema = Depends(get_current_active_user),
    token_service: TokenService = Depends(Provide[Container.services.token_service]),
) -> TokenTransactionHistoryResponse:
    """
    내 토큰 거래 내역 - 최신순 페이징

    Returns:
        TokenTransactionHistoryResponse
        - balance: 현재 잔액
        - transactions: 거래 목록
        - total_count: 전체 거래 수
        - has_next: 다음 페이지 존재 여부
    """
    return token_service.get_transactions(current_user.id, limit=limit, offset=offset)


@router.get("/affordability/{amount}", response_model=AffordabilityResponse)
@inject
async def check_affordability(
    amount: int = Path(..., ge=1, description="필요 토큰 수"),
    current_user: UserSchema = Depends(get_current_active_user),
    token_service: TokenService = Depends(Provide[Container.services.token_service]),
) -> AffordabilityResponse:
    return token_service.check_affordability(current_user.id, amount)


@router.post(
    "/gift",
    response_model=GiftTokensResponse,
    dependencies=[Depends(rate_limit("gift"))],
)
@inject
async def gift_tokens(
    request: GiftTokensRequest,
    current_user: UserSchema = Depends(get_current_active_user),
    token_service: TokenService = Depends(Provide[Container.services.token_service]),
) -> GiftTokensResponse:
    """
    토큰 선물 - 내 잔액에서 차감하여 다른 사용자에게 지급

    HTTP Status:
        200: 성공
        400: 잔액 부족, 자기 자신에게 선물, 한도 초과
        404: 받는 사용자 없음
        429: 요청 한도 초과
    """
    return token_service.gift_tokens(
        sender_id=current_user.id,
        recipient_id=request.recipient_id,
        amount=request.amount,
    )
