"""In-memory cache store with TTL and tags, for development, tests and single-process deploys."""

import threading
import time
from typing import Any, Callable, Iterable

from skycast.cache_store.base import CacheStore, sanitize_key

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/in_memory_cache_store")


class InMemoryCacheStore(CacheStore):
    """Thread-safe, TTL-aware in-memory get-or-compute store.

    Concurrent misses on the same key are serialized by a per-key lock so the
    compute callable runs once; different keys never block each other. Expired
    entries are purged on every miss, together with their tag memberships, and a
    key's lock is dropped once its compute finishes.
    """

    def __init__(self) -> None:
        """Initialize empty entry, tag and lock tables."""
        logger.debug("Initializing InMemoryCacheStore")
        self._entries: dict[str, dict[str, Any]] = {}
        self._tags: dict[str, set[str]] = {}
        self._lock = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}

    def _evict(self, key: str) -> None:
        """Remove `key` and its tag memberships. Caller holds self._lock."""
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        for tag in entry["tags"]:
            members = self._tags.get(tag)
            if members is None:
                continue
            members.discard(key)
            if not members:
                del self._tags[tag]

    def _purge_expired(self) -> None:
        """Evict every expired entry. Caller holds self._lock."""
        now = time.monotonic()
        expired = [key for key, entry in self._entries.items() if entry["exp"] < now]
        for key in expired:
            self._evict(key)
        if expired:
            logger.debug("Purged expired cache entries", extra={"count": len(expired)})

    def _lookup(self, key: str) -> tuple[bool, Any]:
        """Return (hit, value), evicting the entry if it has expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            if entry["exp"] < time.monotonic():
                self._evict(key)
                return False, None
            return True, entry["value"]

    def _key_lock(self, key: str) -> threading.Lock:
        """Return the compute lock dedicated to `key`."""
        with self._lock:
            return self._key_locks.setdefault(key, threading.Lock())

    def _release_key_lock(self, key: str, lock: threading.Lock) -> None:
        with self._lock:
            if self._key_locks.get(key) is lock:
                del self._key_locks[key]

    def get(self, key: str, compute: Callable[[], Any], ttl_seconds: int, tags: Iterable[str] = ()) -> Any:
        """Return a fresh cached value or compute, store and return a new one."""
        key = sanitize_key(key)
        hit, value = self._lookup(key)
        if hit:
            logger.debug("Cache hit", extra={"key": key})
            return value

        lock = self._key_lock(key)
        try:
            with lock:
                # Another caller may have filled the entry while we waited.
                hit, value = self._lookup(key)
                if hit:
                    logger.debug("Cache hit after wait", extra={"key": key})
                    return value

                logger.debug("Cache miss", extra={"key": key, "ttl_seconds": ttl_seconds})
                value = compute()
                tag_keys = {sanitize_key(tag) for tag in tags}
                with self._lock:
                    self._purge_expired()
                    self._evict(key)
                    self._entries[key] = {
                        "value": value,
                        "exp": time.monotonic() + ttl_seconds,
                        "tags": tag_keys,
                    }
                    for tag in tag_keys:
                        self._tags.setdefault(tag, set()).add(key)
                return value
        finally:
            self._release_key_lock(key, lock)

    def invalidate_tag(self, tag: str) -> None:
        """Remove every entry registered under `tag`."""
        tag = sanitize_key(tag)
        with self._lock:
            keys = set(self._tags.get(tag, ()))
            for key in keys:
                self._evict(key)
            self._tags.pop(tag, None)
        logger.info("Invalidated cache tag", extra={"cache_tag": tag, "keys": len(keys)})

    def delete(self, key: str) -> None:
        """Remove an entry if it exists."""
        with self._lock:
            self._evict(sanitize_key(key))

    def clear(self) -> None:
        """Clear all entries and tags."""
        with self._lock:
            self._entries.clear()
            self._tags.clear()
            self._key_locks.clear()
