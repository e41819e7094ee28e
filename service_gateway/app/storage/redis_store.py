"""
Redis-backed store shared by every gateway instance.
"""

from __future__ import annotations

import math
import uuid
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.logging import get_logger

from .base import KeyValueStore, StoreError


class RedisKeyValueStore(KeyValueStore):
    """
    Key-value store over Redis.

    Sliding windows are sorted sets scored by event time in milliseconds;
    cache values are plain strings with an expiry.
    """

    def __init__(self, redis_url: Optional[str] = None, *, client: Optional[redis.Redis] = None) -> None:
        if client is None and not redis_url:
            raise ValueError("redis_url or client is required")
        self.redis_url = redis_url
        self.logger = get_logger("gateway.redis_store")
        self._redis: Optional[redis.Redis] = client

    def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        return self._redis

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._get_redis().get(key)
        except RedisError as exc:
            raise StoreError(f"redis get failed: {exc}") from exc
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> None:
        expiry = max(1, math.ceil(ttl_seconds)) if ttl_seconds else None
        try:
            await self._get_redis().set(key, value, ex=expiry)
        except RedisError as exc:
            raise StoreError(f"redis set failed: {exc}") from exc

    async def increment_window(self, key: str, now_ms: int, window_ms: int) -> int:
        member = f"{now_ms}-{uuid.uuid4().hex}"
        try:
            async with self._get_redis().pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(key, "-inf", f"({now_ms - window_ms}")
                pipe.zadd(key, {member: now_ms})
                pipe.zcard(key)
                pipe.pexpire(key, window_ms + 1)
                results = await pipe.execute()
        except RedisError as exc:
            raise StoreError(f"redis window increment failed: {exc}") from exc
        return int(results[2])

    async def window_score_at(self, key: str, rank: int) -> Optional[int]:
        try:
            entries = await self._get_redis().zrange(key, rank, rank, withscores=True)
        except RedisError as exc:
            raise StoreError(f"redis window read failed: {exc}") from exc
        if not entries:
            return None
        _, score = entries[0]
        return int(score)

    async def ping(self) -> bool:
        try:
            return bool(await self._get_redis().ping())
        except RedisError as exc:
            self.logger.error("Redis health check failed", error=str(exc))
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
