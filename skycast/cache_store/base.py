"""Shared protocol and key helpers for cache store backends."""

import re
from typing import Any, Callable, Iterable, Protocol

_RESERVED_CHARS = re.compile(r"[{}()/\\@:\s]+")


def sanitize_key(key: str) -> str:
    """Replace characters reserved by cache backends with a neutral separator."""
    return _RESERVED_CHARS.sub("_", key.strip())


class CacheStore(Protocol):
    """Protocol for get-or-compute cache backends with tag invalidation."""

    def get(
        self,
        key: str,
        compute: Callable[[], Any],
        ttl_seconds: int,
        tags: Iterable[str] = (),
    ) -> Any:
        """Return the cached value for `key`, computing and storing it on a miss.

        If `compute` raises, nothing is stored and the exception propagates.
        """

    def invalidate_tag(self, tag: str) -> None:
        """Drop every entry stored under `tag`."""

    def delete(self, key: str) -> None:
        """Delete a single entry without raising if it is absent."""

    def clear(self) -> None:
        """Clear all cached entries."""
