"""
Login attempt rate limiting.

Fixed window per client address: the first attempt opens a window of
LOGIN_RATE_LIMIT_WINDOW_SECONDS, every attempt inside it increments the counter, and once the
counter exceeds LOGIN_RATE_LIMIT_MAX further attempts get 429 with Retry-After until the
window ends.

The counter store is injected. MemoryRateLimitStore is process-local and resets on restart,
so it is only correct for a single instance; deployments with several instances must use
RedisRateLimitStore (RATE_LIMIT_BACKEND=redis).
"""
from __future__ import annotations
import math
import threading
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, Optional, Protocol

from fastapi import Depends, Request

from petpro.core.config import settings
from petpro.core.errors import ErrorCode, http_error
from petpro.core.logger import log_security_event, logger


@dataclass(frozen=True)
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after: int = 0


class RateLimitStore(Protocol):
    def hit(self, key: str, now: float, window: float) -> RateLimitEntry:
        """Count one attempt for `key` and return the entry after counting it."""

    def clear(self) -> None:
        ...


class MemoryRateLimitStore:
    # expired entries are swept once the map grows past this size
    PRUNE_THRESHOLD = 10_000

    def __init__(self) -> None:
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, now: float, window: float) -> RateLimitEntry:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now >= entry.reset_at:
                entry = RateLimitEntry(count=1, reset_at=now + window)
            else:
                entry = RateLimitEntry(count=entry.count + 1, reset_at=entry.reset_at)
            self._entries[key] = entry
            if len(self._entries) > self.PRUNE_THRESHOLD:
                self._prune(now)
            return entry

    def _prune(self, now: float) -> None:
        for k in [k for k, e in self._entries.items() if now >= e.reset_at]:
            del self._entries[k]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisRateLimitStore:
    """Shared counter: INCR per key, expiry set when the window opens."""

    def __init__(self, client, prefix: str = "login_rl:") -> None:
        self.client = client
        self.prefix = prefix

    def hit(self, key: str, now: float, window: float) -> RateLimitEntry:
        k = f"{self.prefix}{key}"
        window_ms = max(1, int(window * 1000))
        pipe = self.client.pipeline()
        pipe.incr(k)
        pipe.pttl(k)
        count, ttl_ms = pipe.execute()
        if int(count) == 1 or ttl_ms is None or int(ttl_ms) < 0:
            self.client.pexpire(k, window_ms)
            ttl_ms = window_ms
        return RateLimitEntry(count=int(count), reset_at=now + int(ttl_ms) / 1000.0)

    def clear(self) -> None:
        keys = list(self.client.scan_iter(match=f"{self.prefix}*"))
        if keys:
            self.client.delete(*keys)


class LoginRateLimiter:
    def __init__(
        self,
        store: RateLimitStore,
        max_attempts: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.clock = clock

    def check(self, key: str) -> RateLimitDecision:
        """Count an attempt; never raises, a failing store lets the attempt through."""
        now = self.clock()
        try:
            entry = self.store.hit(key, now, self.window_seconds)
        except Exception:
            logger.warning("Rate limit store unavailable; allowing attempt", exc_info=True)
            return RateLimitDecision(allowed=True, count=0)

        if entry.count > self.max_attempts:
            retry_after = max(1, math.ceil(entry.reset_at - now))
            return RateLimitDecision(allowed=False, count=entry.count, retry_after=retry_after)
        return RateLimitDecision(allowed=True, count=entry.count)

    def reset(self) -> None:
        self.store.clear()


def client_ip(req: Request) -> str:
    forwarded = req.headers.get("x-forwarded-for")
    if forwarded and forwarded.strip():
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if req.client and req.client.host:
        return req.client.host
    return "unknown"


def build_store(backend: Optional[str] = None) -> RateLimitStore:
    backend = (backend or settings.RATE_LIMIT_BACKEND).lower()
    if backend == "redis":
        from petpro.core.redis import get_redis
        return RedisRateLimitStore(get_redis())
    if backend != "memory":
        raise ValueError(f"Unknown RATE_LIMIT_BACKEND: {backend}")
    return MemoryRateLimitStore()


@lru_cache(maxsize=1)
def get_login_rate_limiter() -> LoginRateLimiter:
    return LoginRateLimiter(
        store=build_store(),
        max_attempts=settings.LOGIN_RATE_LIMIT_MAX,
        window_seconds=settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
    )


def login_rate_limit(
    req: Request,
    limiter: LoginRateLimiter = Depends(get_login_rate_limiter),
) -> None:
    ip = client_ip(req)
    decision = limiter.check(ip)
    if decision.allowed:
        return
    log_security_event(
        action="login",
        result="rate_limited",
        meta={"ip": ip, "attempts": decision.count, "retry_after": decision.retry_after},
        level="warning",
    )
    raise http_error(
        code=ErrorCode.RATE_LIMITED,
        message="Muitas tentativas de login. Tente novamente em alguns minutos.",
        headers={"Retry-After": str(decision.retry_after)},
    )
