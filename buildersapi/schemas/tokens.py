from pydantic import AliasChoices, BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from buildersapi.models.tokens import TokenTransactionType


class TokenBalanceResponse(BaseModel):
    """토큰 잔액 응답"""

    balance: int = Field(..., description="현재 토큰 잔액")
    dollar_value: float = Field(..., description="잔액의 달러 환산 가치")

    class Config:
        from_attributes = True


class TokenTransactionEntry(BaseModel):
    """토큰 거래 내역 항목"""

    id: int = Field(..., description="거래 ID")
    user_id: int = Field(..., description="사용자 ID")
    amount: int = Field(..., description="변동량 (양수: 적립, 음수: 차감)")
    type: TokenTransactionType = Field(..., description="거래 유형")
    description: str = Field("", description="거래 설명")
    # ORM 속성명은 meta (metadata는 declarative 예약어)
    metadata: Optional[Dict[str, Any]] = Field(
        None,
        validation_alias=AliasChoices("meta", "metadata"),
        description="부가 정보",
    )
    idempotency_key: Optional[str] = Field(None, description="멱등성 키")
    balance_after: int = Field(..., description="거래 후 잔액")
    created_at: Optional[datetime] = Field(None, description="생성 시간")

    class Config:
        from_attributes = True


class TokenTransactionHistoryResponse(BaseModel):
    """토큰 거래 내역 조회 응답"""

    balance: int = Field(..., description="현재 잔액")
    transactions: List[TokenTransactionEntry] = Field(..., description="거래 목록 (최신순)")
    total_count: int = Field(..., description="전체 거래 수")
    has_next: bool = Field(..., description="다음 페이지 존재 여부")


class TokenTransactionResult(BaseModel):
    """적립/차감 처리 결과"""

    new_balance: int = Field(..., description="거래 후 잔액")
    transaction_id: int = Field(..., description="거래 ID")
    amount: int = Field(..., description="변동량")
    type: TokenTransactionType = Field(..., description="거래 유형")
    replayed: bool = Field(False, description="멱등성 키로 기존 결과를 반환했는지 여부")


class GiftTokensRequest(BaseModel):
    """토큰 선물 요청"""

    recipient_id: int = Field(..., gt=0, description="받는 사용자 ID")
    amount: int = Field(..., gt=0, description="선물할 토큰 수")


class GiftTokensResponse(BaseModel):
    success: bool = True
    message: str
    tokens_gifted: int
    new_balance: int
    sender_transaction_id: int
    recipient_transaction_id: int


class AffordabilityResponse(BaseModel):
    """지불 가능 여부 응답"""

    user_id: int
    amount: int
    can_afford: bool
    current_balance: int
    shortfall: int


class AdminTokenAdjustmentRequest(BaseModel):
    """관리자 토큰 조정 요청"""

    user_id: int = Field(..., gt=0, description="사용자 ID")
    amount: int = Field(..., description="조정할 토큰 (양수: 추가, 음수: 차감)")
    reason: str = Field(..., min_length=1, max_length=255, description="조정 사유")


class TokenIntegrityResponse(BaseModel):
    """토큰 원장 정합성 검증 응답"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    user_id: Optional[int] = Field(None, description="사용자 ID (단일 사용자 검증 시)")
    recorded_balance: Optional[int] = Field(None, description="잔액 테이블의 값")
    calculated_balance: Optional[int] = Field(None, description="거래 합계로 계산한 잔액")
    transaction_count: Optional[int] = Field(None, description="거래 수")
    total_balances: Optional[int] = Field(None, description="전체 잔액 합계")
    total_transactions_sum: Optional[int] = Field(None, description="전체 거래 합계")
    mismatched_user_ids: List[int] = Field(default_factory=list)
    verified_at: datetime = Field(..., description="검증 시간")
