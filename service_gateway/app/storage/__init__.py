"""
Storage backends for the gateway.

The rate limiter needs a KeyValueStore (sliding-window counting); the TTL
cache only needs a CacheStore. Redis is the backend for multi-instance
deployments; the memory and filesystem stores assume a single host.
"""

from .base import CacheStore, KeyValueStore, StoreError
from .filesystem import FileCacheStore
from .memory import MemoryKeyValueStore
from .redis_store import RedisKeyValueStore

__all__ = [
    "CacheStore",
    "KeyValueStore",
    "StoreError",
    "FileCacheStore",
    "MemoryKeyValueStore",
    "RedisKeyValueStore",
]
