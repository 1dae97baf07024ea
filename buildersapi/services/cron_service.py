from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import Session

from buildersapi.config import Settings
from buildersapi.models.tokens import TokenTransactionType
from buildersapi.repositories.listing_repository import (
    AdvertisementRepository,
    ForecastRepository,
    ServiceListingRepository,
)
from buildersapi.repositories.user_repository import UserRepository
from buildersapi.schemas.cron import ExpireListingsResponse, ProTokenGrantResponse
from buildersapi.services.token_service import TokenService
import logging

logger = logging.getLogger(__name__)


class CronService:
    """주기 작업 - 모두 재실행해도 결과가 같음"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.ad_repo = AdvertisementRepository(db)
        self.service_repo = ServiceListingRepository(db)
        self.forecast_repo = ForecastRepository(db)
        self.user_repo = UserRepository(db)
        self.token_service = TokenService(db, settings)

    def expire_listings(self, now: Optional[datetime] = None) -> ExpireListingsResponse:
        """기간이 지난 ACTIVE 광고/서비스 리스팅/예측을 EXPIRED 로 전환"""
        now = now or datetime.now(timezone.utc)

        result = ExpireListingsResponse(
            expired_advertisements=self.ad_repo.expire_due(now),
            expired_service_listings=self.service_repo.expire_due(now),
            expired_forecasts=self.forecast_repo.expire_due(now),
            timestamp=now,
        )
        logger.info(
            f"Expired listings: ads={result.expired_advertisements} "
            f"services={result.expired_service_listings} "
            f"forecasts={result.expired_forecasts}"
        )
        return result

    def grant_pro_tokens(self, now: Optional[datetime] = None) -> ProTokenGrantResponse:
        """활성 Pro 사용자에게 월간 토큰 지급

        멱등성 키 pro-grant:{user_id}:{YYYY-MM} 로 같은 달 재실행 시 중복 지급하지 않습니다.
        한 사용자의 실패는 기록 후 다음 사용자로 진행합니다.
        """
        now = now or datetime.now(timezone.utc)
        period = now.strftime("%Y-%m")
        amount = self.settings.PRO_MONTHLY_TOKEN_GRANT

        granted = 0
        skipped = 0
        for user_id in self.user_repo.get_active_pro_user_ids():
            try:
                result = self.token_service.credit(
                    user_id,
                    amount,
                    TokenTransactionType.PRO_SUBSCRIPTION_GRANT,
                    description=f"Pro subscription tokens for {period}",
                    metadata={"period": period},
                    idempotency_key=f"pro-grant:{user_id}:{period}",
                )
            except Exception as e:
                logger.error(f"Pro token grant failed for user {user_id}: {str(e)}")
                skipped += 1
                continue

            if result.replayed:
                skipped += 1
            else:
                granted += 1

        logger.info(f"Pro token grant {period}: granted={granted} skipped={skipped}")
        return ProTokenGrantResponse(
            period=period,
            granted=granted,
            skipped=skipped,
            tokens_per_user=amount,
            timestamp=now,
        )
