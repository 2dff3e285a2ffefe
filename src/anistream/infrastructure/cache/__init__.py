"""Cache Infrastructure - tagged in-memory response cache."""

from .cache_factory import CacheBackend, create_cache, dispose_cache
from .memory_cache import CacheEntry, CacheSubscription, TaggedMemoryCache

__all__ = [
    "CacheBackend",
    "CacheEntry",
    "CacheSubscription",
    "TaggedMemoryCache",
    "create_cache",
    "dispose_cache",
]
