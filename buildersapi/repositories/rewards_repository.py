from typing import List, Optional, Tuple
from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from buildersapi.models.rewards import (
    PostReward as PostRewardModel,
    RewardStatus,
    UserEarnings as UserEarningsModel,
)
from buildersapi.repositories.base import BaseRepository
from buildersapi.schemas.rewards import PostRewardResponse, UserEarningsResponse


class RewardsRepository(BaseRepository[UserEarningsModel, UserEarningsResponse]):
    """크리에이터 보상(센트) 리포지토리 - 토큰 원장과 별개

    쓰기 메서드는 커밋하지 않습니다.
    """

    def __init__(self, db: Session):
        super().__init__(UserEarningsModel, UserEarningsResponse, db)

    def _earnings_filter(self, user_id: int):
        return self.db.query(self.model_class).filter(
            self.model_class.user_id == user_id
        )

    def _earnings_query(self, user_id: int):
        # 벌크 UPDATE 이후 조회이므로 세션 캐시를 DB 값으로 덮어씀
        return self._earnings_filter(user_id).populate_existing()

    def get_earnings(self, user_id: int) -> Optional[UserEarningsResponse]:
        self._ensure_clean_session()
        return self._to_schema(self._earnings_query(user_id).first())

    def ensure_earnings_row(self, user_id: int) -> None:
        """보상 행이 없으면 생성 (upsert 대용)"""
        if self._earnings_query(user_id).first():
            return
        try:
            with self.db.begin_nested():
                self.db.add(self.model_class(user_id=user_id))
        except IntegrityError:
            pass

    def update_earnings(self, user_id: int, **values) -> int:
        """보상 행 갱신, 영향받은 행 수 반환"""
        return self._earnings_filter(user_id).update(
            values, synchronize_session=False
        )

    def add_pending_reward(
        self, user_id: int, amount: int, description: str
    ) -> PostRewardResponse:
        reward = PostRewardModel(
            user_id=user_id,
            amount=amount,
            description=description,
            status=RewardStatus.PENDING,
        )
        self.db.add(reward)
        self._earnings_filter(user_id).update(
            {
                self.model_class.pending_amount: self.model_class.pending_amount
                + amount,
                self.model_class.lifetime_earnings: self.model_class.lifetime_earnings
                + amount,
            },
            synchronize_session=False,
        )
        self.db.flush()
        self.db.refresh(reward)
        return PostRewardResponse.model_validate(reward)

    def _pending_rewards(self, user_id: int):
        return self.db.query(PostRewardModel).filter(
            PostRewardModel.user_id == user_id,
            PostRewardModel.status == RewardStatus.PENDING,
        )

    def cancel_pending(self, user_id: int, reason: Optional[str]) -> int:
        """PENDING 보상을 CANCELLED 로 전환하고 pending_amount 를 0으로

        lifetime_earnings 는 차감하지 않습니다.
        """
        cancelled = self._pending_rewards(user_id).update(
            {
                PostRewardModel.status: RewardStatus.CANCELLED,
                PostRewardModel.cancel_reason: reason,
            },
            synchronize_session=False,
        )
        if cancelled:
            self.update_earnings(user_id, pending_amount=0)
        return cancelled

    def mark_pending_paid(self, user_id: int) -> Tuple[int, int]:
        """PENDING 보상을 PAID 로 전환. (건수, 금액) 반환"""
        count, amount = (
            self._pending_rewards(user_id)
            .with_entities(
                func.count(PostRewardModel.id),
                func.coalesce(func.sum(PostRewardModel.amount), 0),
            )
            .one()
        )
        if not count:
            return 0, 0

        self._pending_rewards(user_id).update(
            {PostRewardModel.status: RewardStatus.PAID},
            synchronize_session=False,
        )
        self._earnings_filter(user_id).update(
            {
                self.model_class.pending_amount: 0,
                self.model_class.paid_amount: self.model_class.paid_amount + amount,
            },
            synchronize_session=False,
        )
        return int(count), int(amount)

    def list_rewards(
        self, user_id: int, limit: int = 50
    ) -> Tuple[List[PostRewardResponse], int]:
        self._ensure_clean_session()
        query = self.db.query(PostRewardModel).filter(PostRewardModel.user_id == user_id)
        total = query.count()
        rewards = query.order_by(desc(PostRewardModel.id)).limit(limit).all()
        return [PostRewardResponse.model_validate(r) for r in rewards], total
