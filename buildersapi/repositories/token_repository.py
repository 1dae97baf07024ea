"""
토큰 리포지토리 - 잔액 테이블과 거래 내역 테이블에 대한 데이터베이스 접근

핵심 특징:
- 잔액 차감은 조건부 UPDATE (WHERE balance >= amount) 한 문장으로 처리되어
  동시 요청에서도 잔액이 음수가 될 수 없습니다
- 모든 쓰기 메서드는 커밋하지 않습니다. 트랜잭션 경계는 서비스가 결정합니다
- (user_id, idempotency_key) 유니크 제약으로 중복 거래를 막습니다
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from buildersapi.models.tokens import (
    TokenBalance as TokenBalanceModel,
    TokenTransaction as TokenTransactionModel,
    TokenTransactionType,
)
from buildersapi.repositories.base import BaseRepository
from buildersapi.schemas.tokens import TokenIntegrityResponse, TokenTransactionEntry


class TokenRepository(BaseRepository[TokenTransactionModel, TokenTransactionEntry]):
    """토큰 원장 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(TokenTransactionModel, TokenTransactionEntry, db)

    # ------------------------------------------------------------------
    # 잔액
    # ------------------------------------------------------------------

    def get_balance(self, user_id: int) -> int:
        """현재 잔액 (잔액 행이 없으면 0)"""
        self._ensure_clean_session()
        balance = (
            self.db.query(TokenBalanceModel.balance)
            .filter(TokenBalanceModel.user_id == user_id)
            .scalar()
        )
        return int(balance or 0)

    def ensure_balance_row(self, user_id: int) -> None:
        """잔액 행이 없으면 0으로 생성

        동시에 두 요청이 생성하려 하면 한쪽은 유니크 제약에 걸리는데,
        savepoint 안에서 처리하므로 바깥 트랜잭션은 그대로 유지됩니다.
        """
        exists = (
            self.db.query(TokenBalanceModel.id)
            .filter(TokenBalanceModel.user_id == user_id)
            .first()
        )
        if exists:
            return

        try:
            with self.db.begin_nested():
                self.db.add(
                    TokenBalanceModel(user_id=user_id, balance=0, lifetime_earned=0)
                )
        except IntegrityError:
            # 다른 트랜잭션이 먼저 생성함
            pass

    def increment_balance(self, user_id: int, amount: int) -> int:
        """잔액 증가 후 새 잔액 반환 (행이 존재해야 함)"""
        self.db.query(TokenBalanceModel).filter(
            TokenBalanceModel.user_id == user_id
        ).update(
            {
                TokenBalanceModel.balance: TokenBalanceModel.balance + amount,
                TokenBalanceModel.lifetime_earned: TokenBalanceModel.lifetime_earned
                + amount,
            },
            synchronize_session=False,
        )
        return self._read_balance(user_id)

    def decrement_balance_if_sufficient(
        self, user_id: int, amount: int
    ) -> Optional[int]:
        """잔액이 충분할 때만 차감하고 새 잔액 반환, 부족하면 None

        확인과 차감이 한 문장이므로 동시 차감 요청 중 잔액을 넘는 요청은
        영향받은 행이 0이 됩니다.
        """
        updated = (
            self.db.query(TokenBalanceModel)
            .filter(
                TokenBalanceModel.user_id == user_id,
                TokenBalanceModel.balance >= amount,
            )
            .update(
                {TokenBalanceModel.balance: TokenBalanceModel.balance - amount},
                synchronize_session=False,
            )
        )
        if updated == 0:
            return None
        return self._read_balance(user_id)

    def _read_balance(self, user_id: int) -> int:
        return int(
            self.db.query(TokenBalanceModel.balance)
            .filter(TokenBalanceModel.user_id == user_id)
            .scalar()
        )

    # ------------------------------------------------------------------
    # 거래 내역
    # ------------------------------------------------------------------

    def insert_transaction(
        self,
        user_id: int,
        amount: int,
        tx_type: TokenTransactionType,
        description: str,
        balance_after: int,
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> TokenTransactionEntry:
        """거래 행 추가 (flush만 수행, 커밋하지 않음)"""
        entry = self.model_class(
            user_id=user_id,
            amount=amount,
            type=tx_type,
            description=description,
            meta=metadata,
            idempotency_key=idempotency_key,
            balance_after=balance_after,
        )
        self.db.add(entry)
        self.db.flush()
        self.db.refresh(entry)
        return self._to_schema(entry)

    def find_by_idempotency_key(
        self, user_id: int, idempotency_key: str
    ) -> Optional[TokenTransactionEntry]:
        """멱등성 키로 기존 거래 조회"""
        instance = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.user_id == user_id,
                self.model_class.idempotency_key == idempotency_key,
            )
            .first()
        )
        return self._to_schema(instance)

    def get_user_transactions(
        self, user_id: int, limit: int = 20, offset: int = 0
    ) -> Tuple[List[TokenTransactionEntry], int]:
        """사용자 거래 내역 (최신순) 및 전체 건수"""
        self._ensure_clean_session()
        base_query = self.db.query(self.model_class).filter(
            self.model_class.user_id == user_id
        )
        total_count = base_query.count()
        instances = (
            base_query.order_by(desc(self.model_class.id))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [self._to_schema(instance) for instance in instances], total_count

    # ------------------------------------------------------------------
    # 정합성 검증
    # ------------------------------------------------------------------

    def verify_integrity_for_user(self, user_id: int) -> TokenIntegrityResponse:
        """
        특정 사용자의 토큰 정합성 검증

        token_balances.balance 와 거래 amount 합계가 같아야 합니다.
        """
        self._ensure_clean_session()
        recorded_balance = self.get_balance(user_id)
        calculated_balance, transaction_count = (
            self.db.query(
                func.coalesce(func.sum(self.model_class.amount), 0),
                func.count(self.model_class.id),
            )
            .filter(self.model_class.user_id == user_id)
            .one()
        )

        status = "OK" if int(calculated_balance) == recorded_balance else "MISMATCH"

        return TokenIntegrityResponse(
            status=status,
            user_id=user_id,
            recorded_balance=recorded_balance,
            calculated_balance=int(calculated_balance),
            transaction_count=int(transaction_count),
            verified_at=datetime.now(timezone.utc),
        )

    def verify_global_integrity(self) -> TokenIntegrityResponse:
        """
        전체 시스템 토큰 정합성 검증

        1. 잔액 합계와 거래 합계 비교
        2. 사용자별로 불일치하는 user_id 수집
        """
        self._ensure_clean_session()
        total_balances = (
            self.db.query(func.coalesce(func.sum(TokenBalanceModel.balance), 0)).scalar()
        )
        total_transactions_sum = (
            self.db.query(func.coalesce(func.sum(self.model_class.amount), 0)).scalar()
        )

        sums = (
            self.db.query(
                self.model_class.user_id, func.sum(self.model_class.amount)
            )
            .group_by(self.model_class.user_id)
            .all()
        )
        balances = dict(
            self.db.query(TokenBalanceModel.user_id, TokenBalanceModel.balance).all()
        )
        tx_sums = {user_id: int(total) for user_id, total in sums}

        mismatched = sorted(
            user_id
            for user_id in set(balances) | set(tx_sums)
            if int(balances.get(user_id, 0)) != tx_sums.get(user_id, 0)
        )

        status = (
            "OK"
            if int(total_balances) == int(total_transactions_sum) and not mismatched
            else "MISMATCH"
        )

        return TokenIntegrityResponse(
            status=status,
            total_balances=int(total_balances),
            total_transactions_sum=int(total_transactions_sum),
            mismatched_user_ids=mismatched,
            verified_at=datetime.now(timezone.utc),
        )
