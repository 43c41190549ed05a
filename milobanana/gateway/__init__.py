"""Request admission (rate limiting)."""

from milobanana.gateway.rate_limit import (
    RATE_LIMIT_SCOPE_AUTH,
    RATE_LIMIT_SCOPE_GLOBAL,
    RateLimitCheckResult,
    RequestRateLimiter,
    build_rate_limiters,
)

__all__ = [
    "RATE_LIMIT_SCOPE_AUTH",
    "RATE_LIMIT_SCOPE_GLOBAL",
    "RateLimitCheckResult",
    "RequestRateLimiter",
    "build_rate_limiters",
]
