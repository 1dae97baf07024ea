"""
인메모리 레이트 리밋

프로세스 로컬 상태만 사용하므로 단일 인스턴스 배포에서만 정확합니다.
키는 "{client_ip}:{preset}" 이며 고정 윈도우 방식으로 카운트합니다.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from fastapi import Request

from buildersapi.config import settings
from buildersapi.core.exceptions import RateLimitError

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = 5 * 60
ABUSE_LOG_TTL_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class RateLimitConfig:
    name: str
    limit: int
    window_seconds: int


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: int = 0


@dataclass
class _Entry:
    count: int
    reset_at: float
    violations: int = 0


@dataclass
class _AbuseRecord:
    count: int
    last_seen: float
    endpoints: Set[str] = field(default_factory=set)


def default_presets() -> Dict[str, RateLimitConfig]:
    return {
        "gift": RateLimitConfig("gift", settings.RATE_LIMIT_GIFT_PER_HOUR, 60 * 60),
        "redeem": RateLimitConfig("redeem", settings.RATE_LIMIT_REDEEM_PER_HOUR, 60 * 60),
        "api": RateLimitConfig("api", settings.RATE_LIMIT_API_PER_MINUTE, 60),
    }


class RateLimiter:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._store: Dict[str, _Entry] = {}
        self._abuse: Dict[str, _AbuseRecord] = {}
        self._last_cleanup = clock()

    def check(self, client_ip: str, config: RateLimitConfig) -> RateLimitResult:
        """요청 1회를 기록하고 허용 여부 반환"""
        with self._lock:
            now = self._clock()
            self._cleanup(now)

            key = f"{client_ip}:{config.name}"
            entry = self._store.get(key)

            if entry is None or now > entry.reset_at:
                # 새 윈도우 - 위반 횟수는 이어서 유지
                self._store[key] = _Entry(
                    count=1,
                    reset_at=now + config.window_seconds,
                    violations=entry.violations if entry else 0,
                )
                return RateLimitResult(
                    allowed=True,
                    remaining=config.limit - 1,
                    reset_at=now + config.window_seconds,
                )

            entry.count += 1
            if entry.count > config.limit:
                entry.violations += 1
                self._log_abuse(client_ip, config.name, entry.violations, now)
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=entry.reset_at,
                    retry_after=max(1, math.ceil(entry.reset_at - now)),
                )

            return RateLimitResult(
                allowed=True,
                remaining=config.limit - entry.count,
                reset_at=entry.reset_at,
            )

    def reset(self) -> None:
        with self._lock:
            self._store.clear()
            self._abuse.clear()

    def get_abuse_stats(self) -> List[dict]:
        with self._lock:
            return [
                {
                    "ip": ip,
                    "violations": record.count,
                    "endpoints": sorted(record.endpoints),
                }
                for ip, record in self._abuse.items()
            ]

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < CLEANUP_INTERVAL_SECONDS:
            return
        self._last_cleanup = now

        for key in [k for k, e in self._store.items() if now > e.reset_at]:
            del self._store[key]
        for ip in [
            ip
            for ip, r in self._abuse.items()
            if now - r.last_seen > ABUSE_LOG_TTL_SECONDS
        ]:
            del self._abuse[ip]

    def _log_abuse(self, client_ip: str, endpoint: str, violations: int, now: float):
        record = self._abuse.get(client_ip)
        if record:
            record.count += 1
            record.last_seen = now
            record.endpoints.add(endpoint)
        else:
            record = _AbuseRecord(count=1, last_seen=now, endpoints={endpoint})
            self._abuse[client_ip] = record

        # 위반 횟수에 따라 로그 레벨 상향
        if violations >= 10 or record.count >= 20:
            logger.error(
                f"[RATE LIMIT] SEVERE ABUSE - IP: {client_ip} | Endpoint: {endpoint} | "
                f"Total violations: {record.count} | "
                f"Endpoints hit: {', '.join(sorted(record.endpoints))}"
            )
        elif violations >= 5 or record.count >= 10:
            logger.warning(
                f"[RATE LIMIT] Suspicious activity - IP: {client_ip} | Endpoint: {endpoint} | "
                f"Violations: {violations} | Total: {record.count}"
            )
        else:
            logger.info(
                f"[RATE LIMIT] Blocked - IP: {client_ip} | Endpoint: {endpoint} | "
                f"Violations: {violations}"
            )


limiter = RateLimiter()


def get_client_ip(request: Request) -> str:
    """클라이언트 IP 주소 추출 (프록시 헤더 우선)"""
    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()

    x_real_ip = request.headers.get("X-Real-IP")
    if x_real_ip:
        return x_real_ip

    return request.client.host if request.client else "unknown"


def rate_limit(preset: str, presets: Optional[Dict[str, RateLimitConfig]] = None):
    """엔드포인트용 레이트 리밋 의존성 팩토리

    사용 예: ``dependencies=[Depends(rate_limit("gift"))]``
    """
    config = (presets or default_presets())[preset]

    def _rate_limit(request: Request) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        result = limiter.check(get_client_ip(request), config)
        if not result.allowed:
            raise RateLimitError(
                "Too many requests. Please slow down.",
                details={"limit": config.limit, "window_seconds": config.window_seconds},
                retry_after=result.retry_after,
            )

    return _rate_limit
