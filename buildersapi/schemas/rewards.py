from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from buildersapi.models.rewards import RewardStatus


class UserEarningsResponse(BaseModel):
    """크리에이터 보상 현황 (센트 단위)"""

    user_id: int
    pending_amount: int = 0
    paid_amount: int = 0
    lifetime_earnings: int = 0
    is_paused: bool = False
    pause_reason: Optional[str] = None
    is_flagged: bool = False
    flag_reason: Optional[str] = None

    class Config:
        from_attributes = True


class PostRewardResponse(BaseModel):
    id: int
    user_id: int
    amount: int
    description: str
    status: RewardStatus
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserRewardsDetailResponse(BaseModel):
    """관리자용 사용자 보상 상세"""

    earnings: UserEarningsResponse
    rewards: List[PostRewardResponse]
    total_rewards: int


class PayoutResponse(BaseModel):
    success: bool = True
    message: str
    amount: int = Field(..., description="지급 금액 (센트)")
    rewards_paid: int = Field(..., description="지급 처리된 보상 수")


class AdminRewardAction(str, Enum):
    PAUSE = "pause"
    RESUME = "resume"
    FLAG = "flag"
    UNFLAG = "unflag"
    CANCEL_PENDING = "cancelPending"


class AdminRewardActionRequest(BaseModel):
    action: AdminRewardAction
    reason: Optional[str] = Field(None, max_length=500)


class AdminRewardActionResponse(BaseModel):
    success: bool = True
    message: str
    cancelled_count: Optional[int] = None
