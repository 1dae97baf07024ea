import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from buildersapi.database.connection import SessionLocal

logger = logging.getLogger("buildersapi")


def get_db() -> Iterator[Session]:
    """요청 단위 세션. 커밋은 서비스가 담당하고 여기서는 실패 시 정리만 한다."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            logger.warning("Rolling back open transaction after request failure")
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Iterator[Session]:
    """스크립트/배치용 세션 - 정상 종료 시 커밋, 예외 시 롤백"""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
