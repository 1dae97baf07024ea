from typing import Optional
from sqlalchemy.orm import Session

from buildersapi.config import Settings
from buildersapi.core.exceptions import (
    BusinessLogicError,
    InvalidAmountError,
    NotFoundError,
    ValidationError,
)
from buildersapi.repositories.rewards_repository import RewardsRepository
from buildersapi.repositories.user_repository import UserRepository
from buildersapi.schemas.rewards import (
    AdminRewardAction,
    AdminRewardActionResponse,
    PayoutResponse,
    PostRewardResponse,
    UserEarningsResponse,
    UserRewardsDetailResponse,
)
import logging

logger = logging.getLogger(__name__)


class RewardService:
    """크리에이터 보상(센트) 관리 - 관리자 제어 포함

    토큰 원장과는 별개이며 어떤 연산도 토큰 잔액을 건드리지 않습니다.
    """

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.rewards_repo = RewardsRepository(db)
        self.user_repo = UserRepository(db)

    def _require_user(self, user_id: int) -> None:
        if not self.user_repo.get_by_id(user_id):
            raise NotFoundError("User not found", {"user_id": user_id})

    def _commit(self, action: str, user_id: int) -> None:
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"[Rewards Admin] {action} failed for user {user_id}: {str(e)}")
            raise

    # ------------------------------------------------------------------
    # 관리자 제어
    # ------------------------------------------------------------------

    def pause_user_rewards(self, user_id: int, reason: Optional[str] = None) -> None:
        self._require_user(user_id)
        self.rewards_repo.ensure_earnings_row(user_id)
        self.rewards_repo.update_earnings(user_id, is_paused=True, pause_reason=reason)
        self._commit("pause", user_id)
        logger.warning(f"[Rewards Admin] Paused rewards for user {user_id}: {reason or 'No note'}")

    def resume_user_rewards(self, user_id: int) -> None:
        if not self.rewards_repo.update_earnings(
            user_id, is_paused=False, pause_reason=None
        ):
            raise NotFoundError("User earnings not found", {"user_id": user_id})
        self._commit("resume", user_id)
        logger.info(f"[Rewards Admin] Resumed rewards for user {user_id}")

    def flag_user(self, user_id: int, reason: str) -> None:
        if not reason or not reason.strip():
            raise ValidationError("Flag reason is required", {"user_id": user_id})
        self._require_user(user_id)
        self.rewards_repo.ensure_earnings_row(user_id)
        self.rewards_repo.update_earnings(user_id, is_flagged=True, flag_reason=reason)
        self._commit("flag", user_id)
        logger.warning(f"[Rewards Admin] Flagged user {user_id}: {reason}")

    def unflag_user(self, user_id: int) -> None:
        if not self.rewards_repo.update_earnings(
            user_id, is_flagged=False, flag_reason=None
        ):
            raise NotFoundError("User earnings not found", {"user_id": user_id})
        self._commit("unflag", user_id)
        logger.info(f"[Rewards Admin] Unflagged user {user_id}")

    def cancel_user_pending_rewards(self, user_id: int, reason: str) -> int:
        """PENDING 보상 전체 취소, 취소 건수 반환 (사유 필수)"""
        if not reason or not reason.strip():
            raise ValidationError(
                "Reason is required for cancelling rewards", {"user_id": user_id}
            )
        cancelled = self.rewards_repo.cancel_pending(user_id, reason)
        self._commit("cancel pending", user_id)
        logger.warning(
            f"[Rewards Admin] Cancelled {cancelled} pending rewards for user {user_id}: "
            f"{reason}"
        )
        return cancelled

    def apply_admin_action(
        self, user_id: int, action: AdminRewardAction, reason: Optional[str] = None
    ) -> AdminRewardActionResponse:
        if action == AdminRewardAction.PAUSE:
            self.pause_user_rewards(user_id, reason)
            return AdminRewardActionResponse(message="Rewards paused")
        if action == AdminRewardAction.RESUME:
            self.resume_user_rewards(user_id)
            return AdminRewardActionResponse(message="Rewards resumed")
        if action == AdminRewardAction.FLAG:
            self.flag_user(user_id, reason or "")
            return AdminRewardActionResponse(message="User flagged")
        if action == AdminRewardAction.UNFLAG:
            self.unflag_user(user_id)
            return AdminRewardActionResponse(message="User unflagged")

        cancelled = self.cancel_user_pending_rewards(user_id, reason or "")
        return AdminRewardActionResponse(
            message=f"Cancelled {cancelled} pending rewards", cancelled_count=cancelled
        )

    # ------------------------------------------------------------------
    # 적립 / 지급
    # ------------------------------------------------------------------

    def record_post_reward(
        self, user_id: int, amount: int, description: str = ""
    ) -> PostRewardResponse:
        """게시글 보상 적립 (PENDING). 일시정지된 사용자는 거부"""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmountError(amount)

        self.rewards_repo.ensure_earnings_row(user_id)
        earnings = self.rewards_repo.get_earnings(user_id)
        if earnings.is_paused:
            self.db.rollback()
            raise BusinessLogicError(
                error_code="REWARDS_PAUSED",
                message="Rewards are paused for this user",
                details={"user_id": user_id},
            )

        try:
            reward = self.rewards_repo.add_pending_reward(user_id, amount, description)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Recorded post reward {reward.id} ({amount} cents) for user {user_id}")
        return reward

    def request_payout(self, user_id: int) -> PayoutResponse:
        """PENDING 보상 지급 처리

        플래그/일시정지 사용자는 지급 불가, 최소 지급액 미만이면 거부합니다.
        """
        earnings = self.rewards_repo.get_earnings(user_id)
        if not earnings:
            raise NotFoundError("No earnings found", {"user_id": user_id})
        if earnings.is_flagged:
            raise BusinessLogicError(
                error_code="REWARDS_FLAGGED",
                message="Payouts are on hold while your account is under review",
            )
        if earnings.is_paused:
            raise BusinessLogicError(
                error_code="REWARDS_PAUSED",
                message="Rewards are paused for this user",
            )
        if earnings.pending_amount < self.settings.REWARDS_MIN_PAYOUT_CENTS:
            raise BusinessLogicError(
                error_code="PAYOUT_MINIMUM",
                message="Pending amount is below the minimum payout",
                details={
                    "pending_amount": earnings.pending_amount,
                    "minimum": self.settings.REWARDS_MIN_PAYOUT_CENTS,
                },
            )

        try:
            count, amount = self.rewards_repo.mark_pending_paid(user_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Paid out {amount} cents ({count} rewards) to user {user_id}")
        return PayoutResponse(
            message="Payout processed", amount=amount, rewards_paid=count
        )

    def get_user_earnings(self, user_id: int) -> UserEarningsResponse:
        earnings = self.rewards_repo.get_earnings(user_id)
        if not earnings:
            return UserEarningsResponse(user_id=user_id)
        return earnings

    def get_user_rewards_detail(self, user_id: int) -> UserRewardsDetailResponse:
        self._require_user(user_id)
        rewards, total = self.rewards_repo.list_rewards(user_id)
        return UserRewardsDetailResponse(
            earnings=self.get_user_earnings(user_id),
            rewards=rewards,
            total_rewards=total,
        )
