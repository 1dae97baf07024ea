"""
토큰 원장 데이터 모델

사용자별 잔액 테이블(token_balances)과 모든 잔액 변동을 기록하는
추가 전용(append-only) 거래 테이블(token_transactions)을 정의합니다.
잔액은 거래와 같은 DB 트랜잭션 안에서만 변경됩니다.
"""

import enum

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    Column,
    Enum,
    ForeignKey,
    Index,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.schema import UniqueConstraint

from buildersapi.models.base import BaseModel, BigIntPK

JSONType = JSON().with_variant(JSONB(), "postgresql")


class TokenTransactionType(str, enum.Enum):
    PURCHASE = "PURCHASE"
    GIFT_RECEIVED = "GIFT_RECEIVED"
    GIFT_SENT = "GIFT_SENT"
    AD_REDEMPTION = "AD_REDEMPTION"
    SERVICE_REDEMPTION = "SERVICE_REDEMPTION"
    FORECAST_PLACED = "FORECAST_PLACED"
    PRO_SUBSCRIPTION_GRANT = "PRO_SUBSCRIPTION_GRANT"
    REFERRAL_REWARD = "REFERRAL_REWARD"
    ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"


class TokenBalance(BaseModel):
    """
    사용자 토큰 잔액 - 사용자당 1행

    - 첫 적립 시 0으로 생성 (lazy)
    - balance >= 0 은 DB CHECK 제약으로도 보장
    - 차감은 조건부 UPDATE(WHERE balance >= amount)로만 수행
    """

    __tablename__ = "token_balances"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_token_balances_non_negative"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)

    user_id = Column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # 현재 잔액 (최소 토큰 단위)
    balance = Column(BigInteger, nullable=False, default=0, server_default="0")

    # 누적 적립량 - 통계용, 차감 시 감소하지 않음
    lifetime_earned = Column(BigInteger, nullable=False, default=0, server_default="0")


class TokenTransaction(BaseModel):
    """
    토큰 거래 내역 - 불변(write-once) 감사 기록

    - amount: 양수=적립, 음수=차감
    - balance_after: 거래 직후 잔액
    - (user_id, idempotency_key) 유니크: 중복 요청 방지
    """

    __tablename__ = "token_transactions"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "idempotency_key", name="uq_token_transactions_idempotency"
        ),
        Index("idx_token_transactions_user", "user_id", "id"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)

    user_id = Column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    amount = Column(BigInteger, nullable=False)

    type = Column(
        Enum(TokenTransactionType, name="token_transaction_type"), nullable=False
    )

    description = Column(Text, nullable=False, default="")

    # 대상 엔티티 id 등 부가 정보 ("metadata"는 declarative 예약어)
    meta = Column("metadata", JSONType, nullable=True)

    idempotency_key = Column(Text, nullable=True)

    balance_after = Column(BigInteger, nullable=False)
