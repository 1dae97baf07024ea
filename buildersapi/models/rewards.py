import enum
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Enum, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from buildersapi.models.base import BaseModel, BigIntPK


class RewardStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class UserEarnings(BaseModel):
    """크리에이터 보상 잔액 (센트 단위) - 토큰 원장과 별개의 통화"""

    __tablename__ = "user_earnings"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    pending_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    paid_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    lifetime_earnings: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # 관리자 제어
    is_paused: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pause_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_flagged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    flag_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class PostReward(BaseModel):
    __tablename__ = "post_rewards"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[RewardStatus] = mapped_column(
        Enum(RewardStatus, name="reward_status"),
        default=RewardStatus.PENDING,
        nullable=False,
    )
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
