"""
Rate limiting package for the Gateway.

Holds the sliding-window limiter and the middleware that applies it per
client identity and route group.
"""

from .middleware import RateLimitMiddleware, make_rate_limit_key
from .sliding_window import RateLimitResult, SlidingWindowRateLimiter

__all__ = [
    "RateLimitMiddleware",
    "RateLimitResult",
    "SlidingWindowRateLimiter",
    "make_rate_limit_key",
]
