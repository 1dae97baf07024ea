from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="buildersapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    PROJECT_NAME: str = "Builders.to Token API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = "builders"
    POSTGRES_SCHEMA: str = "public"

    # 지정 시 POSTGRES_* 대신 사용 (테스트/로컬 sqlite 등)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    CRON_SECRET: str = ""

    # Token economics
    TOKENS_PER_DOLLAR: int = 10  # 10 tokens = $1
    REFERRAL_REWARD_TOKENS: int = 10
    PRO_MONTHLY_TOKEN_GRANT: int = 50
    MAX_GIFT_TOKENS: int = 10_000

    # Advertisements
    AD_BASE_PRICE_CENTS: int = 500  # tier 0 = $5, 이후 티어마다 2배
    AD_SLOT_CAPACITY: int = 10  # 플랫폼 전체 동시 노출 광고 슬롯 수
    SIDEBAR_AD_DURATION_DAYS: int = 30

    # Service listings
    SERVICE_REDEMPTION_COST: int = 50
    SERVICE_LISTING_DURATION_DAYS: int = 90

    # Forecasts
    FORECAST_DURATION_DAYS: int = 1
    MIN_FORECAST_COINS: int = 10
    MAX_FORECAST_COINS: int = 100

    # Creator rewards (cents)
    REWARDS_MIN_PAYOUT_CENTS: int = 500

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_GIFT_PER_HOUR: int = 10
    RATE_LIMIT_REDEEM_PER_HOUR: int = 30
    RATE_LIMIT_API_PER_MINUTE: int = 100


settings = Settings()
