"""
Key-value store capabilities shared by the cache and the rate limiter.
"""

from __future__ import annotations

import abc
from typing import Optional


class StoreError(RuntimeError):
    """Raised when a backing store cannot be reached or rejects an operation."""


class CacheStore(abc.ABC):
    """Minimal get/set-with-ttl store used by the keyed TTL cache."""

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored string or None when absent."""

    @abc.abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> None:
        """Store a string value, optionally expiring after ttl_seconds."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class KeyValueStore(CacheStore):
    """Cache store that can also count events in a sliding window per key."""

    @abc.abstractmethod
    async def increment_window(self, key: str, now_ms: int, window_ms: int) -> int:
        """
        Record an event at now_ms and return the number of events in the window.

        Events before ``now_ms - window_ms`` are dropped first. The whole
        operation is atomic per key.
        """

    @abc.abstractmethod
    async def window_score_at(self, key: str, rank: int) -> Optional[int]:
        """Timestamp (ms) of the event at the given ascending rank, if any."""
