from typing import Optional
from sqlalchemy.orm import Session

from buildersapi.config import Settings
from buildersapi.core.security import decode_access_token
from buildersapi.repositories.user_repository import UserRepository
from buildersapi.schemas.user import User as UserSchema
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """Bearer 토큰으로 사용자를 식별하는 서비스 (로그인/OAuth 는 외부 시스템 담당)"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.user_repo = UserRepository(db)
        self.settings = settings

    def get_current_user(self, token: str) -> Optional[UserSchema]:
        """토큰으로 현재 사용자 조회"""
        payload = decode_access_token(token)
        if not payload:
            return None

        user = self.user_repo.get_by_id(payload.user_id)
        if not user:
            logger.warning(f"Token for unknown user {payload.user_id}")
            return None

        return user
