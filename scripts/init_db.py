import logging
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text

from buildersapi.config import settings
from buildersapi.database.connection import engine
from buildersapi.database.session import get_db_context
from buildersapi.logging_config import setup_logging
from buildersapi.models.base import Base

# 테이블 등록용 import
from buildersapi.models import listing, rewards, tokens, user  # noqa: F401
from buildersapi.services.ad_pricing_service import AdPricingService

logger = logging.getLogger("buildersapi")


def init_db():
    """스키마/테이블 생성 후 광고 가격 설정 행을 시드한다."""
    try:
        if engine.dialect.name == "postgresql":
            with engine.connect() as conn:
                conn.execute(
                    text(f"CREATE SCHEMA IF NOT EXISTS {settings.POSTGRES_SCHEMA}")
                )
                conn.commit()

        Base.metadata.create_all(bind=engine)

        with get_db_context() as db:
            tier = AdPricingService(db, settings).get_current_tier()

        logger.info(
            f"Database initialized (schema={settings.POSTGRES_SCHEMA}, ad tier={tier})"
        )

    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    init_db()
