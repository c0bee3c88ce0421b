"""Cache store backends."""

from .base import CacheStore, sanitize_key
from .factory import build_cache_store
from .memory import InMemoryCacheStore
from .redis import RedisCacheStore

__all__ = [
    "CacheStore",
    "sanitize_key",
    "build_cache_store",
    "InMemoryCacheStore",
    "RedisCacheStore",
]
