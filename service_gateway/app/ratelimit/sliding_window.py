"""
Sliding-window rate limiter for the Gateway service.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from shared.logging import get_logger

from ..storage import KeyValueStore, StoreError


@dataclass(frozen=True)
class RateLimitResult:
    """Decision for one request plus the quota metadata sent back to clients."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # epoch milliseconds

    def headers(self) -> dict:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_at),
        }


class SlidingWindowRateLimiter:
    """
    Distributed sliding-window limiter backed by a shared KeyValueStore.

    Every call records its timestamp, denied calls included, so hammering a
    denied key keeps it denied. A request is allowed while the number of
    timestamps in ``[now - window, now]`` stays within the quota.

    ``reset_at`` is the last moment the blocking timestamp still counts; a slot
    frees up once the clock passes it. When the key is at or over quota that is
    the oldest timestamp that must leave the window for one more request to
    fit, otherwise the oldest one.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        limit: int = 120,
        window_seconds: float = 60,
        prefix: str = "prism:ratelimit",
        fail_open: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.store = store
        self.quota = limit
        self.window_ms = int(window_seconds * 1000)
        self.prefix = prefix
        self.fail_open = fail_open
        self.logger = get_logger("gateway.rate_limiter")
        self._clock = clock

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def limit(self, key: str) -> RateLimitResult:
        now_ms = int(self._clock() * 1000)
        store_key = self._make_key(key)

        try:
            count = await self.store.increment_window(store_key, now_ms, self.window_ms)
            rank = count - self.quota if count >= self.quota else 0
            oldest = await self.store.window_score_at(store_key, rank)
        except StoreError as exc:
            return self._store_failure(key, now_ms, exc)

        reset_at = (oldest if oldest is not None else now_ms) + self.window_ms
        allowed = count <= self.quota
        result = RateLimitResult(
            allowed=allowed,
            limit=self.quota,
            remaining=max(0, self.quota - count),
            reset_at=reset_at,
        )

        if not allowed:
            self.logger.warning(
                "Rate limit exceeded",
                key=key,
                count=count,
                limit=self.quota,
                reset_at=reset_at,
            )
        return result

    def _store_failure(self, key: str, now_ms: int, exc: Exception) -> RateLimitResult:
        policy = "fail_open" if self.fail_open else "fail_closed"
        self.logger.error("Rate limit store unavailable", key=key, policy=policy, error=str(exc))
        return RateLimitResult(
            allowed=self.fail_open,
            limit=self.quota,
            remaining=self.quota if self.fail_open else 0,
            reset_at=now_ms + self.window_ms,
        )
