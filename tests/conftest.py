import os

# 앱 모듈 import 전에 DB URL 지정 (engine 이 import 시점에 생성됨)
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from buildersapi.config import Settings
from buildersapi.core.auth_middleware import get_current_active_user
from buildersapi.main import create_app
from buildersapi.middleware.rate_limit import limiter
from buildersapi.models.base import Base
from buildersapi.models import listing, rewards, tokens  # noqa: F401
from buildersapi.models.listing import ForecastTarget
from buildersapi.models.user import User, UserRole
from buildersapi.schemas.user import User as UserSchema


@pytest.fixture
def engine(tmp_path):
    """테스트용 SQLite 파일 DB

    트랜잭션을 BEGIN IMMEDIATE 로 시작해 쓰기 잠금을 먼저 잡으므로,
    여러 스레드의 동시 요청이 Postgres 행 잠금처럼 직렬화됩니다.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'builders.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        TOKENS_PER_DOLLAR=10,
        AD_BASE_PRICE_CENTS=500,
        AD_SLOT_CAPACITY=2,
        SERVICE_REDEMPTION_COST=50,
        MIN_FORECAST_COINS=10,
        MAX_FORECAST_COINS=100,
        REWARDS_MIN_PAYOUT_CENTS=500,
        PRO_MONTHLY_TOKEN_GRANT=50,
        REFERRAL_REWARD_TOKENS=10,
        MAX_GIFT_TOKENS=1000,
    )


@pytest.fixture
def make_user(db_session):
    """사용자 생성 팩토리 - 생성된 user id 반환"""
    counter = {"n": 0}

    def _make_user(
        nickname=None, is_pro=False, is_active=True, role=UserRole.USER.value
    ) -> int:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=f"builder{n}@example.com",
            nickname=nickname or f"builder{n}",
            is_pro=is_pro,
            is_active=is_active,
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user.id

    return _make_user


@pytest.fixture
def make_target(db_session):
    """예측 대상(창업자) 생성 팩토리"""

    def _make_target(founder_id: int, is_active=True, min_stake=10, max_stake=100) -> int:
        target = ForecastTarget(
            user_id=founder_id,
            is_active=is_active,
            min_stake=min_stake,
            max_stake=max_stake,
            current_mrr=50_000,
        )
        db_session.add(target)
        db_session.commit()
        return target.id

    return _make_target


# ----------------------------------------------------------------------
# 라우터 테스트용 앱/인증
# ----------------------------------------------------------------------


@pytest.fixture
def app():
    limiter.reset()
    app = create_app()
    yield app
    app.dependency_overrides.clear()
    limiter.reset()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def regular_user():
    return UserSchema(id=1, email="builder@example.com", nickname="builder")


@pytest.fixture
def admin_user():
    return UserSchema(
        id=99, email="admin@example.com", nickname="admin", role=UserRole.ADMIN
    )


@pytest.fixture
def login_as(app):
    """get_current_active_user 를 주어진 사용자로 대체"""

    def _login_as(user):
        app.dependency_overrides[get_current_active_user] = lambda: user

    return _login_as
