from datetime import datetime, timezone
from sqlalchemy.orm import Session

from buildersapi.config import Settings
from buildersapi.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
)
from buildersapi.models.listing import ListingStatus
from buildersapi.repositories.listing_repository import NON_REDEEMABLE_STATUSES
from buildersapi.schemas.redemption import (
    RedeemableKind,
    RedemptionQuote,
    RedemptionResponse,
)
from buildersapi.services.redeemables import Redeemable, get_redeemable
from buildersapi.services.token_service import TokenService
import logging

logger = logging.getLogger(__name__)


class RedemptionService:
    """토큰으로 엔티티(광고, 서비스 리스팅, 예측)를 활성화하는 워크플로우

    토큰 차감, 상태 전환, 후처리 훅은 하나의 DB 트랜잭션으로 처리됩니다.
    어느 단계든 실패하면 전부 롤백되어 잔액과 거래 내역이 변하지 않습니다.
    """

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.token_service = TokenService(db, settings)

    def _load_owned(self, redeemable: Redeemable, entity_id: int, user_id: int):
        entity = redeemable.repository.get_by_id(entity_id)
        if not entity:
            raise NotFoundError(
                f"{redeemable.label.capitalize()} not found",
                {"kind": redeemable.kind.value, "entity_id": entity_id},
            )
        if entity.user_id != user_id:
            raise AuthorizationError(
                f"You can only redeem tokens for your own {redeemable.label}",
                {"kind": redeemable.kind.value, "entity_id": entity_id},
            )
        return entity

    def get_redemption_quote(
        self, kind: RedeemableKind, entity_id: int, user_id: int
    ) -> RedemptionQuote:
        """토큰 교환 가능 여부 조회 (부수효과 없음)"""
        redeemable = get_redeemable(kind, self.db, self.settings)
        entity = self._load_owned(redeemable, entity_id, user_id)

        cost = redeemable.cost(entity)
        # 광고 가격 설정 행이 처음 생성된 경우 반영
        self.db.commit()
        balance = self.token_service.get_balance(user_id)

        return RedemptionQuote(
            kind=redeemable.kind,
            entity_id=entity_id,
            can_redeem=balance >= cost and entity.status not in NON_REDEEMABLE_STATUSES,
            cost=cost,
            balance=balance,
            status=entity.status,
        )

    def activate_with_tokens(
        self, kind: RedeemableKind, entity_id: int, user_id: int
    ) -> RedemptionResponse:
        """토큰을 차감하고 엔티티를 ACTIVE 로 전환

        Raises:
            NotFoundError: 엔티티 없음
            AuthorizationError: 소유자가 아님
            InvalidStateError: 이미 ACTIVE 또는 EXPIRED
            InsufficientBalanceError: 잔액 부족
        """
        redeemable = get_redeemable(kind, self.db, self.settings)
        entity = self._load_owned(redeemable, entity_id, user_id)

        if entity.status == ListingStatus.ACTIVE:
            raise InvalidStateError(
                f"This {redeemable.label} is already active",
                {"status": entity.status.value},
            )
        if entity.status == ListingStatus.EXPIRED:
            raise InvalidStateError(
                f"This {redeemable.label} has expired. Please create a new one.",
                {"status": entity.status.value},
            )

        try:
            redeemable.before_spend(entity)
            cost = redeemable.cost(entity)

            spent = self.token_service.spend(
                user_id,
                cost,
                redeemable.transaction_type,
                description=redeemable.description(entity),
                metadata=redeemable.metadata(entity),
                commit=False,
            )

            start_date = datetime.now(timezone.utc)
            end_date = start_date + redeemable.duration(entity)
            activated = redeemable.repository.activate(
                entity_id,
                start_date=start_date,
                end_date=end_date,
                amount_paid_tokens=cost,
            )
            if activated is None:
                # 동시 요청이 먼저 활성화함
                raise InvalidStateError(
                    f"This {redeemable.label} is already active",
                    {"entity_id": entity_id},
                )

            redeemable.after_activate(activated)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(
                f"Token redemption failed for {redeemable.kind.value} {entity_id} "
                f"by user {user_id}: {str(e)}"
            )
            raise

        logger.info(
            f"User {user_id} activated {redeemable.kind.value} {entity_id} "
            f"with {cost} tokens (transaction {spent.transaction_id})"
        )
        return RedemptionResponse(
            success=True,
            message=f"{redeemable.label.capitalize()} activated successfully with tokens",
            kind=redeemable.kind,
            entity_id=entity_id,
            status=ListingStatus.ACTIVE,
            tokens_spent=cost,
            new_balance=spent.new_balance,
            transaction_id=spent.transaction_id,
            start_date=start_date,
            end_date=end_date,
        )
