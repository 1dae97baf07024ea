import pytest
from starlette.requests import Request

from buildersapi.core.exceptions import RateLimitError
from buildersapi.middleware import rate_limit as rate_limit_module
from buildersapi.middleware.rate_limit import (
    CLEANUP_INTERVAL_SECONDS,
    RateLimitConfig,
    RateLimiter,
    get_client_ip,
    limiter,
    rate_limit,
)

GIFT = RateLimitConfig("gift", limit=3, window_seconds=60)


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _request(client_ip="10.0.0.1", headers=None):
    raw_headers = [
        (key.lower().encode(), value.encode()) for key, value in (headers or {}).items()
    ]
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/",
            "headers": raw_headers,
            "client": (client_ip, 50000),
        }
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(clock=clock)


@pytest.fixture(autouse=True)
def reset_global_limiter():
    limiter.reset()
    yield
    limiter.reset()


class TestRateLimiter:
    """고정 윈도우 레이트 리밋 테스트"""

    def test_allows_up_to_limit(self, rate_limiter):
        results = [rate_limiter.check("1.1.1.1", GIFT) for _ in range(3)]

        assert all(r.allowed for r in results)
        assert [r.remaining for r in results] == [2, 1, 0]

    def test_blocks_over_limit_with_retry_after(self, rate_limiter, clock):
        for _ in range(3):
            rate_limiter.check("1.1.1.1", GIFT)
        clock.advance(20)

        blocked = rate_limiter.check("1.1.1.1", GIFT)

        assert blocked.allowed is False
        assert blocked.remaining == 0
        assert blocked.retry_after == 40

    def test_window_resets(self, rate_limiter, clock):
        for _ in range(4):
            rate_limiter.check("1.1.1.1", GIFT)
        clock.advance(61)

        result = rate_limiter.check("1.1.1.1", GIFT)

        assert result.allowed is True
        assert result.remaining == 2

    def test_keys_are_per_ip_and_preset(self, rate_limiter):
        redeem = RateLimitConfig("redeem", limit=1, window_seconds=60)
        for _ in range(3):
            rate_limiter.check("1.1.1.1", GIFT)

        assert rate_limiter.check("2.2.2.2", GIFT).allowed is True
        assert rate_limiter.check("1.1.1.1", redeem).allowed is True
        assert rate_limiter.check("1.1.1.1", GIFT).allowed is False

    def test_violations_are_tracked(self, rate_limiter, clock):
        for _ in range(5):
            rate_limiter.check("6.6.6.6", GIFT)
        clock.advance(61)
        for _ in range(4):
            rate_limiter.check("6.6.6.6", GIFT)

        stats = rate_limiter.get_abuse_stats()

        assert stats == [{"ip": "6.6.6.6", "violations": 3, "endpoints": ["gift"]}]

    def test_cleanup_drops_expired_windows(self, rate_limiter, clock):
        rate_limiter.check("1.1.1.1", GIFT)
        clock.advance(CLEANUP_INTERVAL_SECONDS + 1)

        rate_limiter.check("2.2.2.2", GIFT)

        assert set(rate_limiter._store) == {"2.2.2.2:gift"}

    def test_reset(self, rate_limiter):
        for _ in range(4):
            rate_limiter.check("1.1.1.1", GIFT)

        rate_limiter.reset()

        assert rate_limiter.check("1.1.1.1", GIFT).allowed is True
        assert rate_limiter.get_abuse_stats() == []


class TestClientIp:
    def test_prefers_forwarded_for(self):
        request = _request(headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})

        assert get_client_ip(request) == "203.0.113.7"

    def test_falls_back_to_real_ip(self):
        request = _request(headers={"X-Real-IP": "198.51.100.4"})

        assert get_client_ip(request) == "198.51.100.4"

    def test_uses_socket_address(self):
        assert get_client_ip(_request(client_ip="192.0.2.1")) == "192.0.2.1"


class TestRateLimitDependency:
    """엔드포인트 의존성 테스트"""

    def test_raises_429_after_limit(self):
        dependency = rate_limit("gift", presets={"gift": GIFT})
        request = _request()

        for _ in range(3):
            dependency(request)
        with pytest.raises(RateLimitError) as exc_info:
            dependency(request)

        assert exc_info.value.status_code == 429
        assert int(exc_info.value.headers["Retry-After"]) >= 1
        assert exc_info.value.details == {"limit": 3, "window_seconds": 60}

    def test_disabled_limiter_allows_everything(self, monkeypatch):
        monkeypatch.setattr(rate_limit_module.settings, "RATE_LIMIT_ENABLED", False)
        dependency = rate_limit("gift", presets={"gift": GIFT})
        request = _request()

        for _ in range(10):
            dependency(request)
