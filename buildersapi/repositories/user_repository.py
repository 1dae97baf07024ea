from typing import List
from sqlalchemy.orm import Session

from buildersapi.models.user import User as UserModel
from buildersapi.schemas.user import User as UserSchema
from buildersapi.repositories.base import BaseRepository


class UserRepository(BaseRepository[UserModel, UserSchema]):
    """사용자 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(UserModel, UserSchema, db)

    def get_active_pro_user_ids(self) -> List[int]:
        """월간 토큰 지급 대상 (활성 Pro 사용자) ID 목록"""
        self._ensure_clean_session()
        rows = (
            self.db.query(self.model_class.id)
            .filter(
                self.model_class.is_pro.is_(True),
                self.model_class.is_active.is_(True),
            )
            .order_by(self.model_class.id)
            .all()
        )
        return [row[0] for row in rows]
