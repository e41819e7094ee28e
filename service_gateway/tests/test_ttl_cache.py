"""
Unit tests for the keyed TTL cache.
"""

import asyncio

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.caching import CacheEntry, KeyedTTLCache
from service_gateway.app.storage import CacheStore, MemoryKeyValueStore, StoreError
from shared.metrics import MetricsCollector


class BrokenStore(CacheStore):
    async def get(self, key):
        raise StoreError("store down")

    async def set(self, key, value, ttl_seconds=None):
        raise StoreError("store down")


class Counter:
    def __init__(self, value="computed"):
        self.calls = 0
        self.value = value

    async def __call__(self):
        self.calls += 1
        return self.value


class TestKeyedTTLCache:
    """Test cases for KeyedTTLCache."""

    @pytest.fixture
    def store(self, clock):
        return MemoryKeyValueStore(clock=clock)

    @pytest.fixture
    def cache(self, store, clock):
        return KeyedTTLCache(store, clock=clock)

    @pytest.mark.asyncio
    async def test_computes_once_within_ttl(self, cache, clock):
        compute = Counter({"price": "2"})

        first = await cache.get_or_compute("eth-price", [], compute, ttl=30)
        clock.advance(29)
        second = await cache.get_or_compute("eth-price", [], compute, ttl=30)

        assert first == second == {"price": "2"}
        assert compute.calls == 1

    @pytest.mark.asyncio
    async def test_recomputes_after_expiry(self, cache, clock):
        compute = Counter()

        await cache.get_or_compute("stats", [], compute, ttl=60)
        clock.advance(61)
        await cache.get_or_compute("stats", [], compute, ttl=60)

        assert compute.calls == 2

    @pytest.mark.asyncio
    async def test_entry_at_exact_ttl_is_still_valid(self, cache, clock):
        compute = Counter()

        await cache.get_or_compute("stats", [], compute, ttl=60)
        clock.advance(60)
        await cache.get_or_compute("stats", [], compute, ttl=60)

        assert compute.calls == 1

    @pytest.mark.asyncio
    async def test_stale_entry_left_in_store_is_recomputed(self, cache, store, clock):
        key = cache.make_key("stats", [])
        entry = CacheEntry(key=key, value="old", stored_at=int(clock() * 1000) - 60_001)
        await store.set(key, entry.to_json())

        assert await cache.get_or_compute("stats", [], Counter("new"), ttl=60) == "new"

    @pytest.mark.asyncio
    async def test_failed_compute_is_not_cached(self, cache, store):
        async def failing():
            raise RuntimeError("upstream exploded")

        with pytest.raises(RuntimeError, match="upstream exploded"):
            await cache.get_or_compute("pools", [], failing, ttl=300)

        assert await store.get(cache.make_key("pools", [])) is None

        compute = Counter()
        assert await cache.get_or_compute("pools", [], compute, ttl=300) == "computed"
        assert compute.calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_computation(self, cache):
        calls = 0

        async def slow():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "shared"

        results = await asyncio.gather(*[
            cache.get_or_compute("tokenlist", [6343], slow, ttl=300) for _ in range(5)
        ])

        assert results == ["shared"] * 5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_the_failure(self, cache):
        async def slow_failure():
            await asyncio.sleep(0.01)
            raise RuntimeError("boom")

        results = await asyncio.gather(
            cache.get_or_compute("pools", [], slow_failure, ttl=300),
            cache.get_or_compute("pools", [], slow_failure, ttl=300),
            return_exceptions=True,
        )

        assert all(isinstance(result, RuntimeError) for result in results)

    @pytest.mark.asyncio
    async def test_store_failures_degrade_to_miss(self, clock):
        cache = KeyedTTLCache(BrokenStore(), clock=clock)
        compute = Counter()

        assert await cache.get_or_compute("stats", [], compute, ttl=60) == "computed"
        assert await cache.get_or_compute("stats", [], compute, ttl=60) == "computed"
        assert compute.calls == 2

    @pytest.mark.asyncio
    async def test_malformed_payload_is_a_miss(self, cache, store):
        await store.set(cache.make_key("stats", []), "not json")
        compute = Counter()

        assert await cache.get_or_compute("stats", [], compute, ttl=60) == "computed"
        assert compute.calls == 1

    @pytest.mark.asyncio
    async def test_records_hit_and_miss_metrics(self, store, clock):
        metrics = MetricsCollector("gateway")
        cache = KeyedTTLCache(store, metrics=metrics, clock=clock)

        await cache.get_or_compute("stats", [], Counter(), ttl=60)
        await cache.get_or_compute("stats", [], Counter(), ttl=60)

        assert metrics.get_counter_value("cache_misses_total", namespace="stats") == 1
        assert metrics.get_counter_value("cache_hits_total", namespace="stats") == 1


class TestCacheEntry:
    def test_json_round_trip_uses_stored_at_field(self):
        entry = CacheEntry(key="stats_1", value={"a": 1}, stored_at=1000)
        payload = entry.to_json()

        assert '"storedAt": 1000' in payload
        assert CacheEntry.from_json(payload) == entry

    def test_validity_window(self):
        entry = CacheEntry(key="k", value=1, stored_at=1000)
        assert entry.is_valid(31_000, 30)
        assert not entry.is_valid(31_001, 30)
