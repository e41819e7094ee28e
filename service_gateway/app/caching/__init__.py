"""
Gateway caching package.

Provides the keyed TTL cache that fronts upstream aggregations. Entries are
short-lived and recomputed on expiry; there is no explicit invalidation.
"""

from .keys import hash_string_to_int, make_cache_key, slugify
from .ttl_cache import CacheEntry, KeyedTTLCache

__all__ = [
    "CacheEntry",
    "KeyedTTLCache",
    "hash_string_to_int",
    "make_cache_key",
    "slugify",
]
