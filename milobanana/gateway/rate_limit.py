"""In-memory sliding-window request limiter keyed by (scope, client ip)."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from milobanana.config.schema import RateLimitConfig

RATE_LIMIT_SCOPE_GLOBAL = "global"
RATE_LIMIT_SCOPE_AUTH = "auth"


@dataclass
class RateLimitEntry:
    hits: list[float] = field(default_factory=list)


@dataclass
class RateLimitCheckResult:
    allowed: bool
    remaining: int
    retry_after_ms: int


def _is_loopback(ip: str | None) -> bool:
    if not ip or not ip.strip():
        return False
    return ip.strip() in ("127.0.0.1", "::1", "localhost")


class RequestRateLimiter:
    """Counts every request in a sliding window; the request that would exceed the limit is refused."""

    def __init__(
        self,
        *,
        max_requests: int,
        window_ms: int,
        exempt_loopback: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max_requests = max_requests
        self._window_ms = window_ms
        self._exempt_loopback = exempt_loopback
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._last_prune = clock()

    def _key(self, ip: str | None, scope: str) -> str:
        ip = (ip or "").strip() or "unknown"
        return f"{scope}:{ip}"

    def _slide(self, entry: RateLimitEntry, now: float) -> None:
        cutoff = now - (self._window_ms / 1000.0)
        entry.hits = [t for t in entry.hits if t > cutoff]

    def _prune(self, now: float) -> None:
        """Drop clients whose whole window has elapsed; runs at most once per window."""
        window = self._window_ms / 1000.0
        if now - self._last_prune < window:
            return
        self._last_prune = now
        cutoff = now - window
        stale = [key for key, entry in self._entries.items() if not entry.hits or entry.hits[-1] <= cutoff]
        for key in stale:
            del self._entries[key]

    def hit(self, ip: str | None, scope: str = RATE_LIMIT_SCOPE_GLOBAL) -> RateLimitCheckResult:
        """Record one request and report whether it may proceed."""
        if self._exempt_loopback and _is_loopback(ip):
            return RateLimitCheckResult(allowed=True, remaining=self._max_requests, retry_after_ms=0)
        now = self._clock()
        self._prune(now)
        entry = self._entries.setdefault(self._key(ip, scope), RateLimitEntry())
        self._slide(entry, now)
        if len(entry.hits) >= self._max_requests:
            retry_after = entry.hits[0] + (self._window_ms / 1000.0) - now
            return RateLimitCheckResult(allowed=False, remaining=0, retry_after_ms=max(0, int(retry_after * 1000)))
        entry.hits.append(now)
        return RateLimitCheckResult(
            allowed=True,
            remaining=self._max_requests - len(entry.hits),
            retry_after_ms=0,
        )

    def reset(self, ip: str | None, scope: str = RATE_LIMIT_SCOPE_GLOBAL) -> None:
        self._entries.pop(self._key(ip, scope), None)

    def size(self) -> int:
        return len(self._entries)


def build_rate_limiters(
    cfg: RateLimitConfig,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> dict[str, RequestRateLimiter]:
    """Global limiter for every endpoint plus a tighter one for login/signup."""
    return {
        RATE_LIMIT_SCOPE_GLOBAL: RequestRateLimiter(
            max_requests=cfg.max_requests,
            window_ms=cfg.window_ms,
            exempt_loopback=cfg.exempt_loopback,
            clock=clock,
        ),
        RATE_LIMIT_SCOPE_AUTH: RequestRateLimiter(
            max_requests=cfg.auth_max_requests,
            window_ms=cfg.auth_window_ms,
            exempt_loopback=cfg.exempt_loopback,
            clock=clock,
        ),
    }
