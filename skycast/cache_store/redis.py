"""Redis-backed cache store with TTL and tag sets."""

import json
from typing import Any, Callable, Iterable

from skycast.cache_store.base import CacheStore, sanitize_key
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/redis_cache_store")


class RedisCacheStore(CacheStore):
    """Redis get-or-compute store. Values are stored as JSON via SETEX.

    Tag membership lives in Redis sets named `<prefix>tag:<tag>`; invalidating a
    tag deletes every member key and then the set itself.
    """

    def __init__(self, client, prefix: str = "skycast:") -> None:
        """Initialize with a Redis client and a key prefix."""
        logger.debug("Initializing RedisCacheStore")
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        """Return the Redis key for a cache key."""
        return f"{self.prefix}{sanitize_key(key)}"

    def _tag_key(self, tag: str) -> str:
        """Return the Redis set name holding the members of a tag."""
        return f"{self.prefix}tag:{sanitize_key(tag)}"

    def _read(self, redis_key: str) -> tuple[bool, Any]:
        """Return (hit, value); read or decode problems count as a miss."""
        try:
            raw = self.client.get(redis_key)
        except Exception as exc:  # pragma: no cover
            logger.error("Failed to read cache entry from Redis: %s", exc)
            return False, None
        if raw is None:
            return False, None
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return True, json.loads(raw)
        except (UnicodeDecodeError, ValueError) as exc:
            logger.warning("Discarding undecodable cache entry: %s", exc)
            return False, None

    def get(self, key: str, compute: Callable[[], Any], ttl_seconds: int, tags: Iterable[str] = ()) -> Any:
        """Return the cached JSON value or compute and persist a new one."""
        redis_key = self._key(key)
        hit, value = self._read(redis_key)
        if hit:
            logger.debug("Cache hit", extra={"key": redis_key})
            return value

        logger.debug("Cache miss", extra={"key": redis_key, "ttl_seconds": ttl_seconds})
        value = compute()
        try:
            self.client.setex(redis_key, int(ttl_seconds), json.dumps(value).encode("utf-8"))
            for tag in tags:
                tag_key = self._tag_key(tag)
                self.client.sadd(tag_key, redis_key)
                # A tag set never needs to outlive the entries it points at.
                self.client.expire(tag_key, int(ttl_seconds))
        except Exception as exc:  # pragma: no cover
            logger.error("Failed to write cache entry to Redis: %s", exc)
        return value

    def invalidate_tag(self, tag: str) -> None:
        """Delete every key registered under `tag`."""
        tag_key = self._tag_key(tag)
        try:
            members = self.client.smembers(tag_key) or set()
            for member in members:
                self.client.delete(member)
            self.client.delete(tag_key)
        except Exception as exc:  # pragma: no cover
            logger.error("Failed to invalidate cache tag in Redis: %s", exc)
            return
        logger.info("Invalidated cache tag", extra={"cache_tag": tag_key, "keys": len(members)})

    def delete(self, key: str) -> None:
        """Delete an entry if present."""
        try:
            self.client.delete(self._key(key))
        except Exception as exc:  # pragma: no cover
            logger.error("Failed to delete cache entry from Redis: %s", exc)

    def clear(self) -> None:
        """Best-effort clear for all entries under the configured prefix."""
        try:
            for key in self.client.scan_iter(f"{self.prefix}*"):
                self.client.delete(key)
        except Exception as exc:  # pragma: no cover
            logger.error("Failed to clear cache from Redis: %s", exc)
