from datetime import datetime
from enum import Enum
from typing import Optional, Union

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from buildersapi.models.base import BaseModel, BigIntPK


class UserRole(str, Enum):
    """사용자 역할 정의"""

    USER = "user"  # 일반 사용자
    PREMIUM = "premium"  # 과금 사용자
    ADMIN = "admin"  # 관리자
    SUPER_ADMIN = "super_admin"  # 최고 관리자

    @classmethod
    def is_admin(cls, role: Union[str, "UserRole"]) -> bool:
        """관리자 권한 확인"""
        if isinstance(role, cls):
            role = role.value
        return role in [cls.ADMIN.value, cls.SUPER_ADMIN.value]


class User(BaseModel):
    __tablename__ = "users"
    __table_args__ = (Index("idx_users_email", "email"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    nickname: Mapped[str] = mapped_column(String(100), nullable=False)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Pro 구독자 - 매월 토큰 지급 대상
    is_pro: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.USER.value, nullable=False
    )
    referred_by_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(str(self.role))
