"""Pick the cache backend at startup."""

from __future__ import annotations

import redis

from skycast import config
from skycast.cache_store.base import CacheStore
from skycast.cache_store.memory import InMemoryCacheStore
from skycast.cache_store.redis import RedisCacheStore
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="cache_store/factory")


def build_cache_store(settings: config.Settings | None = None) -> CacheStore:
    """Return a Redis store when configured and reachable, otherwise an in-memory one."""
    settings = settings or config.settings
    if settings.cache_redis_url:
        masked = mask_url(settings.cache_redis_url)
        try:
            client = redis.Redis.from_url(settings.cache_redis_url)
            client.ping()
            logger.info("Using RedisCacheStore", extra={"redis_url": masked})
            return RedisCacheStore(client, prefix=settings.cache_prefix)
        except redis.RedisError as exc:
            logger.warning(
                "Falling back to InMemoryCacheStore (Redis unavailable)",
                extra={"redis_url": masked, "error": str(exc)},
            )
    return InMemoryCacheStore()
