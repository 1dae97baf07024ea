from typing import Optional
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from buildersapi.models.listing import AdPricingConfig as AdPricingConfigModel
from buildersapi.repositories.base import BaseRepository

SINGLETON_ID = "singleton"


class AdPricingState(BaseModel):
    id: str
    current_tier: int
    version: int

    class Config:
        from_attributes = True


class AdPricingRepository(BaseRepository[AdPricingConfigModel, AdPricingState]):
    """광고 가격 티어 싱글톤 행 접근"""

    def __init__(self, db: Session):
        super().__init__(AdPricingConfigModel, AdPricingState, db)

    def get_state(self) -> Optional[AdPricingState]:
        # CAS 갱신은 세션 캐시를 거치지 않으므로 항상 DB 값으로 덮어씀
        self._ensure_clean_session()
        instance = (
            self.db.query(self.model_class)
            .populate_existing()
            .filter(self.model_class.id == SINGLETON_ID)
            .first()
        )
        return self._to_schema(instance)

    def get_or_create(self, initial_tier: int) -> AdPricingState:
        """싱글톤 행 조회, 없으면 initial_tier 로 생성 (커밋하지 않음)"""
        state = self.get_state()
        if state:
            return state

        try:
            with self.db.begin_nested():
                self.db.add(
                    self.model_class(id=SINGLETON_ID, current_tier=initial_tier, version=0)
                )
        except IntegrityError:
            # 다른 요청이 먼저 생성함
            pass
        return self.get_state()

    def compare_and_advance(self, expected_version: int) -> bool:
        """version 이 일치할 때만 티어를 1 올림 (커밋하지 않음)

        Returns:
            bool: 이 호출이 티어를 올렸는지 여부
        """
        updated = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.id == SINGLETON_ID,
                self.model_class.version == expected_version,
            )
            .update(
                {
                    self.model_class.current_tier: self.model_class.current_tier + 1,
                    self.model_class.version: self.model_class.version + 1,
                },
                synchronize_session=False,
            )
        )
        return updated == 1
