"""
In-process store for single-instance deployments and tests.
"""

from __future__ import annotations

import bisect
import time
from typing import Callable, Dict, List, Optional, Tuple

from .base import KeyValueStore


class MemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store; only correct while one process serves all traffic."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._values: Dict[str, Tuple[str, Optional[float]]] = {}
        self._windows: Dict[str, List[int]] = {}

    async def get(self, key: str) -> Optional[str]:
        item = self._values.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            del self._values[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._values[key] = (value, expires_at)

    async def increment_window(self, key: str, now_ms: int, window_ms: int) -> int:
        # No awaits below, so this runs atomically on the event loop
        events = self._windows.setdefault(key, [])
        cutoff = bisect.bisect_left(events, now_ms - window_ms)
        if cutoff:
            del events[:cutoff]
        bisect.insort(events, now_ms)
        return len(events)

    async def window_score_at(self, key: str, rank: int) -> Optional[int]:
        events = self._windows.get(key, [])
        if 0 <= rank < len(events):
            return events[rank]
        return None
