from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Optional

from buildersapi.models.user import UserRole


class User(BaseModel):
    id: int
    email: EmailStr
    nickname: str
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    is_active: bool = True
    is_pro: bool = False
    role: UserRole = UserRole.USER
    referred_by_id: Optional[int] = None

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(self.role)
