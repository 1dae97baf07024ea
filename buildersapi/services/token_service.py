from typing import Any, Dict, Optional, Union
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from buildersapi.config import Settings
from buildersapi.core.exceptions import (
    BusinessLogicError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidTransactionTypeError,
    NotFoundError,
)
from buildersapi.models.tokens import TokenTransactionType
from buildersapi.repositories.token_repository import TokenRepository
from buildersapi.repositories.user_repository import UserRepository
from buildersapi.schemas.tokens import (
    AffordabilityResponse,
    GiftTokensResponse,
    TokenBalanceResponse,
    TokenIntegrityResponse,
    TokenTransactionEntry,
    TokenTransactionHistoryResponse,
    TokenTransactionResult,
)
import logging

logger = logging.getLogger(__name__)


def validate_token_amount(amount: Any) -> int:
    """양의 정수만 허용 (bool 거부)"""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)
    return amount


def coerce_transaction_type(
    tx_type: Union[str, TokenTransactionType]
) -> TokenTransactionType:
    if isinstance(tx_type, TokenTransactionType):
        return tx_type
    try:
        return TokenTransactionType(tx_type)
    except ValueError:
        raise InvalidTransactionTypeError(tx_type)


class TokenService:
    """토큰 원장 비즈니스 로직 - 모든 잔액 변동은 이 서비스를 거칩니다

    credit/spend 는 기본적으로 자체 커밋합니다. commit=False 로 호출하면
    현재 DB 트랜잭션에 참여만 하고, 커밋/롤백은 호출자가 담당합니다.
    """

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.token_repo = TokenRepository(db)
        self.user_repo = UserRepository(db)

    # ------------------------------------------------------------------
    # Balance accessor
    # ------------------------------------------------------------------

    def get_balance(self, user_id: int) -> int:
        """현재 잔액. 잔액 행이 없으면 0"""
        return self.token_repo.get_balance(user_id)

    def has_enough_balance(self, user_id: int, amount: int) -> bool:
        """amount 이상 보유 여부 (부수효과 없음)"""
        validate_token_amount(amount)
        return self.get_balance(user_id) >= amount

    def get_balance_response(self, user_id: int) -> TokenBalanceResponse:
        balance = self.get_balance(user_id)
        return TokenBalanceResponse(
            balance=balance,
            dollar_value=round(balance / self.settings.TOKENS_PER_DOLLAR, 2),
        )

    def check_affordability(self, user_id: int, amount: int) -> AffordabilityResponse:
        validate_token_amount(amount)
        balance = self.get_balance(user_id)
        return AffordabilityResponse(
            user_id=user_id,
            amount=amount,
            can_afford=balance >= amount,
            current_balance=balance,
            shortfall=max(0, amount - balance),
        )

    # ------------------------------------------------------------------
    # Credit / Spend
    # ------------------------------------------------------------------

    def credit(
        self,
        user_id: int,
        amount: int,
        tx_type: Union[str, TokenTransactionType],
        description: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
        commit: bool = True,
    ) -> TokenTransactionResult:
        """토큰 적립

        잔액 행이 없으면 생성한 뒤 증가시키고 거래를 기록합니다.
        """
        return self._apply(
            user_id,
            validate_token_amount(amount),
            coerce_transaction_type(tx_type),
            description,
            metadata,
            idempotency_key,
            commit,
            is_credit=True,
        )

    def spend(
        self,
        user_id: int,
        amount: int,
        tx_type: Union[str, TokenTransactionType],
        description: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
        commit: bool = True,
    ) -> TokenTransactionResult:
        """토큰 차감

        잔액 확인과 차감은 조건부 UPDATE 한 문장입니다. 잔액이 부족하면
        InsufficientBalanceError 가 발생하고 아무것도 기록되지 않습니다.
        """
        return self._apply(
            user_id,
            validate_token_amount(amount),
            coerce_transaction_type(tx_type),
            description,
            metadata,
            idempotency_key,
            commit,
            is_credit=False,
        )

    def _apply(
        self,
        user_id: int,
        amount: int,
        tx_type: TokenTransactionType,
        description: str,
        metadata: Optional[Dict[str, Any]],
        idempotency_key: Optional[str],
        commit: bool,
        is_credit: bool,
    ) -> TokenTransactionResult:
        requested_amount = amount if is_credit else -amount
        if idempotency_key:
            existing = self.token_repo.find_by_idempotency_key(user_id, idempotency_key)
            if existing:
                logger.info(
                    f"Idempotent replay for user {user_id} key={idempotency_key} "
                    f"(transaction {existing.id})"
                )
                return self._replayed(existing, requested_amount, tx_type)

        try:
            if is_credit:
                self.token_repo.ensure_balance_row(user_id)
                new_balance = self.token_repo.increment_balance(user_id, amount)
                signed_amount = amount
            else:
                new_balance = self.token_repo.decrement_balance_if_sufficient(
                    user_id, amount
                )
                if new_balance is None:
                    raise InsufficientBalanceError(
                        required=amount, balance=self.token_repo.get_balance(user_id)
                    )
                signed_amount = -amount

            entry = self.token_repo.insert_transaction(
                user_id=user_id,
                amount=signed_amount,
                tx_type=tx_type,
                description=description,
                balance_after=new_balance,
                metadata=metadata,
                idempotency_key=idempotency_key,
            )
            if commit:
                self.db.commit()
        except IntegrityError:
            if not commit:
                raise
            self.db.rollback()
            # 같은 키의 동시 요청이 먼저 커밋됨
            if idempotency_key:
                existing = self.token_repo.find_by_idempotency_key(
                    user_id, idempotency_key
                )
                if existing:
                    logger.info(
                        f"Idempotent replay after conflict for user {user_id} "
                        f"key={idempotency_key}"
                    )
                    return self._replayed(existing, requested_amount, tx_type)
            logger.error(f"Token {tx_type.value} failed for user {user_id}: integrity error")
            raise
        except InsufficientBalanceError as e:
            if commit:
                self.db.rollback()
            logger.warning(
                f"Insufficient balance for user {user_id}: "
                f"required={e.required} balance={e.balance} ({tx_type.value})"
            )
            raise
        except Exception as e:
            if commit:
                self.db.rollback()
            logger.error(f"Token {tx_type.value} failed for user {user_id}: {str(e)}")
            raise

        logger.info(
            f"Token {tx_type.value} {signed_amount:+d} for user {user_id} "
            f"-> balance {new_balance} (transaction {entry.id})"
        )
        return TokenTransactionResult(
            new_balance=new_balance,
            transaction_id=entry.id,
            amount=signed_amount,
            type=tx_type,
        )

    @staticmethod
    def _replayed(
        entry: TokenTransactionEntry, amount: int, tx_type: TokenTransactionType
    ) -> TokenTransactionResult:
        """같은 키의 기존 거래 결과. 요청과 방향/유형/금액이 다르면 거부"""
        if entry.amount != amount or entry.type != tx_type:
            logger.warning(
                f"Idempotency key {entry.idempotency_key} reused for user {entry.user_id} "
                f"with a different request (stored {entry.type.value} {entry.amount:+d}, "
                f"requested {tx_type.value} {amount:+d})"
            )
            raise BusinessLogicError(
                error_code="IDEMPOTENCY_CONFLICT",
                message="Idempotency key was already used for a different transaction",
                details={
                    "idempotency_key": entry.idempotency_key,
                    "transaction_id": entry.id,
                },
            )
        return TokenTransactionResult(
            new_balance=entry.balance_after,
            transaction_id=entry.id,
            amount=entry.amount,
            type=entry.type,
            replayed=True,
        )

    # ------------------------------------------------------------------
    # Gift / referral / purchase / admin
    # ------------------------------------------------------------------

    def gift_tokens(
        self, sender_id: int, recipient_id: int, amount: int
    ) -> GiftTokensResponse:
        """다른 사용자에게 토큰 선물 (보내기/받기 두 거래를 한 트랜잭션으로)"""
        validate_token_amount(amount)
        if amount > self.settings.MAX_GIFT_TOKENS:
            raise BusinessLogicError(
                error_code="GIFT_LIMIT",
                message=f"Cannot gift more than {self.settings.MAX_GIFT_TOKENS} tokens at once",
                details={"amount": amount, "max": self.settings.MAX_GIFT_TOKENS},
            )
        if sender_id == recipient_id:
            raise BusinessLogicError(
                error_code="GIFT_SELF", message="You cannot gift tokens to yourself"
            )

        recipient = self.user_repo.get_by_id(recipient_id)
        if not recipient:
            raise NotFoundError("Recipient not found", {"recipient_id": recipient_id})
        sender = self.user_repo.get_by_id(sender_id)
        sender_name = sender.nickname if sender else "A builder"

        try:
            sent = self.spend(
                sender_id,
                amount,
                TokenTransactionType.GIFT_SENT,
                description=f"Gifted {amount} tokens to {recipient.nickname}",
                metadata={"recipient_id": recipient_id},
                commit=False,
            )
            received = self.credit(
                recipient_id,
                amount,
                TokenTransactionType.GIFT_RECEIVED,
                description=f"Received {amount} tokens from {sender_name}",
                metadata={"sender_id": sender_id},
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"User {sender_id} gifted {amount} tokens to user {recipient_id}")
        return GiftTokensResponse(
            success=True,
            message=f"Successfully gifted {amount} tokens to {recipient.nickname}",
            tokens_gifted=amount,
            new_balance=sent.new_balance,
            sender_transaction_id=sent.transaction_id,
            recipient_transaction_id=received.transaction_id,
        )

    def award_referral(
        self, referrer_id: int, referred_user_id: int
    ) -> TokenTransactionResult:
        """추천 보상 - 추천받은 사용자당 한 번만 지급"""
        return self.credit(
            referrer_id,
            self.settings.REFERRAL_REWARD_TOKENS,
            TokenTransactionType.REFERRAL_REWARD,
            description="Referral reward",
            metadata={"referred_user_id": referred_user_id},
            idempotency_key=f"referral:{referred_user_id}",
        )

    def fulfill_purchase(
        self, user_id: int, tokens: int, payment_reference: str
    ) -> TokenTransactionResult:
        """결제 완료 후 토큰 지급 (결제 참조값으로 중복 지급 방지)"""
        if not payment_reference:
            raise BusinessLogicError(
                error_code="PURCHASE_REFERENCE",
                message="Payment reference is required",
            )
        return self.credit(
            user_id,
            tokens,
            TokenTransactionType.PURCHASE,
            description=f"Purchased {tokens} tokens",
            metadata={"payment_reference": payment_reference},
            idempotency_key=f"purchase:{payment_reference}",
        )

    def admin_adjust(
        self, admin_id: int, user_id: int, amount: int, reason: str
    ) -> TokenTransactionResult:
        """관리자 토큰 조정 (양수: 추가, 음수: 차감)"""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
            raise InvalidAmountError(amount, "Adjustment amount must be a non-zero integer")
        if not self.user_repo.get_by_id(user_id):
            raise NotFoundError("User not found", {"user_id": user_id})

        description = f"Admin adjustment by {admin_id}: {reason}"
        metadata = {"admin_id": admin_id, "reason": reason}
        if amount > 0:
            result = self.credit(
                user_id, amount, TokenTransactionType.ADMIN_ADJUSTMENT,
                description=description, metadata=metadata,
            )
        else:
            result = self.spend(
                user_id, -amount, TokenTransactionType.ADMIN_ADJUSTMENT,
                description=description, metadata=metadata,
            )
        logger.warning(
            f"Admin {admin_id} adjusted user {user_id} tokens by {amount}: {reason}"
        )
        return result

    # ------------------------------------------------------------------
    # History / integrity
    # ------------------------------------------------------------------

    def get_transactions(
        self, user_id: int, limit: int = 20, offset: int = 0
    ) -> TokenTransactionHistoryResponse:
        """거래 내역 (최신순, 최대 100건)"""
        if limit > 100:
            limit = 100

        transactions, total_count = self.token_repo.get_user_transactions(
            user_id, limit=limit, offset=offset
        )
        return TokenTransactionHistoryResponse(
            balance=self.get_balance(user_id),
            transactions=transactions,
            total_count=total_count,
            has_next=offset + limit < total_count,
        )

    def verify_user_integrity(self, user_id: int) -> TokenIntegrityResponse:
        result = self.token_repo.verify_integrity_for_user(user_id)
        if result.status != "OK":
            logger.error(
                f"Token ledger mismatch for user {user_id}: "
                f"recorded={result.recorded_balance} calculated={result.calculated_balance}"
            )
        return result

    def verify_global_integrity(self) -> TokenIntegrityResponse:
        result = self.token_repo.verify_global_integrity()
        if result.status != "OK":
            logger.error(
                f"Global token ledger mismatch: balances={result.total_balances} "
                f"transactions={result.total_transactions_sum} "
                f"users={result.mismatched_user_ids}"
            )
        return result
