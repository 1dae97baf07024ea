import hmac
import logging
from typing import Optional
from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from buildersapi.config import settings
from buildersapi.core.exceptions import AuthenticationError
from buildersapi.database.session import get_db
from buildersapi.services.auth_service import AuthService
from buildersapi.schemas.user import User as UserSchema

logger = logging.getLogger(__name__)

# JWT Bearer 토큰 스킴
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> UserSchema:
    """필수 사용자 인증 - 유효한 토큰이 필요함"""
    if not credentials:
        raise AuthenticationError("Authentication required")

    auth_service = AuthService(db, settings=settings)
    user = auth_service.get_current_user(credentials.credentials)
    if not user:
        raise AuthenticationError("Invalid or expired token")
    return user


def get_current_active_user(
    current_user: UserSchema = Depends(get_current_user),
) -> UserSchema:
    """활성 사용자만 허용"""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account",
        )
    return current_user


def require_admin(
    current_user: UserSchema = Depends(get_current_active_user),
) -> UserSchema:
    """관리자 권한이 필요한 엔드포인트용 의존성"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """크론 엔드포인트 인증 - Authorization: Bearer <CRON_SECRET>

    CRON_SECRET 이 설정되지 않은 경우(개발 환경) 경고만 남기고 허용합니다.
    """
    if not settings.CRON_SECRET:
        logger.warning("CRON_SECRET is not configured; allowing cron request")
        return

    supplied = credentials.credentials if credentials else ""
    if not hmac.compare_digest(supplied.encode(), settings.CRON_SECRET.encode()):
        raise AuthenticationError("Invalid cron secret")
