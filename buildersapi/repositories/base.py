from abc import ABC
from typing import TypeVar, Generic, Optional, Dict, Any, Type
from sqlalchemy.orm import Query, Session
from pydantic import BaseModel

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseRepository(Generic[T, SchemaType], ABC):
    """모든 리포지토리의 베이스 클래스 - Pydantic 응답 보장

    쓰기 메서드는 commit 인자를 받습니다. 서비스가 여러 쓰기를 하나의
    DB 트랜잭션으로 묶을 때는 commit=False로 호출하고 마지막에 직접 커밋합니다.
    """

    def __init__(
        self, model_class: Type[T], schema_class: Type[SchemaType], db: Session
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.db = db

    def _to_schema(self, model_instance: Any) -> Optional[SchemaType]:
        """SQLAlchemy 모델을 Pydantic 스키마로 변환"""
        if model_instance is None:
            return None
        return self.schema_class.model_validate(model_instance)

    def _ensure_clean_session(self) -> None:
        """실패한 트랜잭션이 남아 있으면 롤백하여 세션을 정상화

        진행 중인(정상) 트랜잭션은 건드리지 않습니다.
        """
        if not self.db.is_active:
            self.db.rollback()

    def _filtered(self, filters: Optional[Dict[str, Any]] = None) -> Query:
        query = self.db.query(self.model_class)
        for key, value in (filters or {}).items():
            if hasattr(self.model_class, key):
                query = query.filter(getattr(self.model_class, key) == value)
        return query

    def _query_by_id(self, id: Any):
        # 벌크 UPDATE(synchronize_session=False) 이후에도 최신 값을 읽도록 populate_existing
        return (
            self.db.query(self.model_class)
            .populate_existing()
            .filter(getattr(self.model_class, "id") == id)
            .first()
        )

    def get_by_id(self, id: Any) -> Optional[SchemaType]:
        """ID로 조회 - Pydantic 스키마 반환"""
        self._ensure_clean_session()
        return self._to_schema(self._query_by_id(id))

    def create(self, commit: bool = True, **kwargs) -> Optional[SchemaType]:
        """새 레코드 생성 - Pydantic 스키마 반환

        commit=False 이면 flush 만 하여 호출한 서비스의 트랜잭션에 참여합니다.
        """
        self._ensure_clean_session()
        instance = self.model_class(**kwargs)
        self.db.add(instance)
        try:
            self.db.flush()
            self.db.refresh(instance)
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return self._to_schema(instance)

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """레코드 수 조회"""
        self._ensure_clean_session()
        return self._filtered(filters).count()

    def update(
        self, instance_id: Any, commit: bool = True, **kwargs
    ) -> Optional[SchemaType]:
        """레코드 업데이트 - 없으면 None"""
        self._ensure_clean_session()
        instance = self._query_by_id(instance_id)
        if not instance:
            return None

        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        try:
            self.db.flush()
            self.db.refresh(instance)
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return self._to_schema(instance)
