"""
Rate limiting middleware applied in front of every gateway route.
"""

from __future__ import annotations

from typing import Optional, Sequence, TYPE_CHECKING

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .sliding_window import SlidingWindowRateLimiter

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_RATE_LIMITED_PATHS = ("/api/*", "/tokenlist.json", "/pools.json", "/stats.json")
API_ROUTE_GROUP = "/api/*"
UNKNOWN_CLIENT = "unknown"
REJECTION_BODY = {"success": False, "error": "rate limit exceeded"}


def get_client_identity(request: Request) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then ``unknown``."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or UNKNOWN_CLIENT

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return UNKNOWN_CLIENT


def get_route_group(path: str) -> str:
    return API_ROUTE_GROUP if path.startswith("/api/") else path


def make_rate_limit_key(request: Request) -> str:
    return f"{get_client_identity(request)}:{get_route_group(request.url.path)}"


def path_matches(path: str, patterns: Sequence[str]) -> bool:
    for pattern in patterns:
        if pattern.endswith("/*"):
            prefix = pattern[:-2]
            if path == prefix or path.startswith(prefix + "/"):
                return True
        elif path == pattern:
            return True
    return False


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Gate matching requests through the sliding-window limiter."""

    def __init__(
        self,
        app,
        rate_limiter: Optional[SlidingWindowRateLimiter],
        *,
        paths: Sequence[str] = DEFAULT_RATE_LIMITED_PATHS,
        metrics: Optional["MetricsCollector"] = None,
    ):
        super().__init__(app)
        self.rate_limiter = rate_limiter
        self.paths = tuple(paths)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next):
        if self.rate_limiter is None or not path_matches(request.url.path, self.paths):
            return await call_next(request)

        key = make_rate_limit_key(request)
        result = await self.rate_limiter.limit(key)

        if self.metrics is not None:
            self.metrics.increment_counter(
                "rate_limit_decisions_total",
                route_group=get_route_group(request.url.path),
                decision="allowed" if result.allowed else "denied",
            )

        if result.allowed:
            response = await call_next(request)
        else:
            response = JSONResponse(status_code=429, content=REJECTION_BODY)

        response.headers.update(result.headers())
        return response
