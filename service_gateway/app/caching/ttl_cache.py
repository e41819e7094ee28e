"""
Keyed TTL cache fronting expensive async computations.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, TYPE_CHECKING

from shared.logging import get_logger

from ..storage import CacheStore, StoreError
from .keys import make_cache_key

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


STORE_EXPIRY_PADDING_SECONDS = 1


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    stored_at: int  # epoch milliseconds

    def is_valid(self, now_ms: int, ttl_seconds: float) -> bool:
        return now_ms - self.stored_at <= ttl_seconds * 1000

    def to_json(self) -> str:
        return json.dumps({"key": self.key, "value": self.value, "storedAt": self.stored_at})

    @classmethod
    def from_json(cls, payload: str) -> "CacheEntry":
        data = json.loads(payload)
        return cls(key=data["key"], value=data["value"], stored_at=int(data["storedAt"]))


class KeyedTTLCache:
    """
    Memoizes ``compute()`` results per ``(namespace, args)`` for ``ttl`` seconds.

    - A valid entry is returned without calling ``compute``.
    - Failed computations are never written; the exception reaches the caller
      and the next call retries.
    - Concurrent misses for one key inside this process share a single
      in-flight computation. Separate processes may still compute the same
      key concurrently.
    - Store errors are logged and degrade to a miss (read) or a skipped
      write; they never fail the caller.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        key_hash: str = "fast",
        metrics: Optional["MetricsCollector"] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.key_hash = key_hash
        self.metrics = metrics
        self.logger = get_logger("gateway.ttl_cache")
        self._clock = clock
        self._inflight: Dict[str, "asyncio.Future[Any]"] = {}

    def make_key(self, namespace: str, args: Sequence[Any] = ()) -> str:
        return make_cache_key(namespace, args, key_hash=self.key_hash)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def get_or_compute(
        self,
        namespace: str,
        args: Sequence[Any],
        compute: Callable[[], Awaitable[Any]],
        ttl: float,
    ) -> Any:
        key = self.make_key(namespace, args)

        inflight = self._inflight.get(key)
        if inflight is None:
            entry = await self._read(key)
            if entry is not None and entry.is_valid(self._now_ms(), ttl):
                self._record(namespace, hit=True)
                self.logger.debug("Cache hit", namespace=namespace, key=key)
                return entry.value
            # another caller may have started computing while we were reading
            inflight = self._inflight.get(key)

        if inflight is not None:
            self.logger.debug("Joining in-flight computation", namespace=namespace, key=key)
            return await asyncio.shield(inflight)

        self._record(namespace, hit=False)
        self.logger.debug("Cache miss", namespace=namespace, key=key)

        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await compute()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            future.exception()  # consumed here; joiners still receive it
            raise
        else:
            future.set_result(value)
            await self._write(CacheEntry(key=key, value=value, stored_at=self._now_ms()), ttl)
            return value
        finally:
            self._inflight.pop(key, None)

    async def _read(self, key: str) -> Optional[CacheEntry]:
        try:
            payload = await self.store.get(key)
        except StoreError as exc:
            self.logger.error("Cache read failed", key=key, error=str(exc))
            return None

        if payload is None:
            return None

        try:
            return CacheEntry.from_json(payload)
        except (ValueError, KeyError, TypeError):
            self.logger.warning("Discarding malformed cache payload", key=key)
            return None

    async def _write(self, entry: CacheEntry, ttl: float) -> None:
        payload = entry.to_json()
        try:
            # The store keeps the entry past ttl so CacheEntry.is_valid decides expiry
            await self.store.set(entry.key, payload, ttl_seconds=ttl + STORE_EXPIRY_PADDING_SECONDS)
        except StoreError as exc:
            self.logger.error("Cache write failed", key=entry.key, error=str(exc))

    def _record(self, namespace: str, *, hit: bool) -> None:
        if self.metrics is None:
            return
        metric = "cache_hits_total" if hit else "cache_misses_total"
        self.metrics.increment_counter(metric, namespace=namespace)
