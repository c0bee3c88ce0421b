"""Resolve free-text place names to coordinates with a layered fallback search."""
from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from skycast import config
from skycast.cache_store import CacheStore
from skycast.data_sources import UpstreamSource
from skycast.errors import NotFound
from skycast.models import GeoMatch
from skycast.payload import to_float
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="geocoding")

# A named attempt returning the raw geocoding body.
SearchStep = Tuple[str, Callable[[], dict]]


def _results(body: dict) -> list:
    results = body.get("results") if isinstance(body, dict) else None
    return results if isinstance(results, list) else []


def _upstream_reason(body: dict) -> Optional[str]:
    """Error string embedded by upstream in a response body, if any."""
    if not isinstance(body, dict):
        return None
    reason = body.get("reason")
    if reason:
        return str(reason)
    error = body.get("error")
    if isinstance(error, str) and error:
        return error
    return None


def _to_match(result: dict, query: str) -> GeoMatch:
    """Normalize one geocoding result; optional fields default to empty."""
    return GeoMatch(
        name=str(result.get("name") or query),
        latitude=to_float(result.get("latitude")),
        longitude=to_float(result.get("longitude")),
        country=str(result.get("country") or ""),
        admin1=str(result.get("admin1") or ""),
    )


class GeocodeResolver:
    """Look a place name up, trying progressively looser queries.

    1. Normalized name in the configured language, cached for a long TTL.
    2. Original casing, same language, uncached.
    3. Original casing in the fallback language, uncached.

    Each step runs only if the previous one returned no results.
    """

    def __init__(
        self,
        upstream: UpstreamSource,
        cache: CacheStore,
        settings: config.Settings | None = None,
    ) -> None:
        self.upstream = upstream
        self.cache = cache
        self.settings = settings or config.settings

    @staticmethod
    def normalize(name: str) -> str:
        return name.strip().lower()

    def cache_key(self, normalized: str) -> str:
        """Cache key for the primary lookup of an already-normalized name."""
        return f"geocode_{self.settings.geocode_language}_{self.settings.geocode_count}_{normalized}"

    def _search(self, name: str, language: str) -> dict:
        return self.upstream.search_places(name, count=self.settings.geocode_count, language=language)

    def _cached_search(self, normalized: str, language: str) -> dict:
        """Primary lookup through the cache; upstream error bodies are not kept."""
        key = self.cache_key(normalized)
        body = self.cache.get(
            key,
            lambda: self._search(normalized, language),
            self.settings.geocode_ttl_seconds,
        )
        if isinstance(body, dict) and body.get("error"):
            logger.debug("Dropping cached geocoding error body", extra={"key": key})
            self.cache.delete(key)
        return body

    def steps(self, name: str) -> List[SearchStep]:
        """Ordered search strategies for `name`."""
        original = name.strip()
        normalized = self.normalize(name)
        language = self.settings.geocode_language
        fallback = self.settings.geocode_fallback_language
        return [
            ("cached_normalized", lambda: self._cached_search(normalized, language)),
            ("original_casing", lambda: self._search(original, language)),
            ("fallback_language", lambda: self._search(original, fallback)),
        ]

    def resolve(self, name: str) -> GeoMatch:
        """Return the first match for `name` or raise NotFound.

        TransportFailure from upstream propagates unchanged.
        """
        if not name or not name.strip():
            raise NotFound(name or "", "empty query")

        reason: Optional[str] = None
        for step, attempt in self.steps(name):
            body = attempt()
            results = _results(body)
            if results:
                match = _to_match(results[0], name.strip())
                logger.info(
                    "Geocoded place",
                    extra={"query": name, "step": step, "match": match.name, "country": match.country},
                )
                return match
            reason = _upstream_reason(body) or reason
            logger.info("No geocoding results", extra={"query": name, "step": step})

        logger.warning("Place not found after all fallbacks", extra={"query": name, "reason": reason})
        raise NotFound(name.strip(), reason)
