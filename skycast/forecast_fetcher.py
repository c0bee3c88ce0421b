"""Fetch raw forecast payloads through the cache, keyed by rounded coordinates."""
from __future__ import annotations

from skycast import config
from skycast.cache_store import CacheStore, sanitize_key
from skycast.data_sources import UpstreamSource
from skycast.models import Coordinate
from skycast.payload import RawForecast
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_fetcher")


def key_coordinate(latitude: float, longitude: float) -> tuple[float, float]:
    """Coordinate as the cache key sees it: each axis rounded to 3 decimals."""
    return float(f"{latitude:.3f}"), float(f"{longitude:.3f}")


def forecast_cache_key(coord: Coordinate, timezone: str) -> str:
    """Exact cache key: coordinates to 3 decimals plus the timezone."""
    lat, lon = key_coordinate(coord.latitude, coord.longitude)
    return sanitize_key(f"forecast_{lat:.3f}_{lon:.3f}_{timezone}")


def forecast_tag(latitude: float, longitude: float) -> str:
    """Coarse invalidation tag: the key coordinate to 2 decimals, any timezone.

    Derived from the key coordinate: coordinates that share a key share a tag.
    """
    lat, lon = key_coordinate(latitude, longitude)
    return sanitize_key(f"forecast_{lat:.2f}_{lon:.2f}")


class ForecastFetcher:
    """Get-or-compute access to raw forecast payloads.

    The cached value is the unmodified upstream body. Malformed bodies raise
    inside the compute callable, so they are never stored.
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

    def _download(self, coord: Coordinate, timezone: str) -> dict:
        logger.info(
            "Fetching forecast from upstream",
            extra={"latitude": coord.latitude, "longitude": coord.longitude, "timezone": timezone},
        )
        payload = self.upstream.fetch_forecast_payload(
            coord.latitude,
            coord.longitude,
            timezone=timezone,
            forecast_days=self.settings.forecast_days,
        )
        raw = RawForecast(payload)
        missing = raw.missing_required()
        if missing:
            logger.warning("Discarding malformed forecast payload", extra={"missing": missing})
        raw.require_minimal()
        return payload

    def fetch(self, coord: Coordinate, timezone: str) -> dict:
        """Return the raw payload for `coord`, from cache when still fresh."""
        return self.cache.get(
            forecast_cache_key(coord, timezone),
            lambda: self._download(coord, timezone),
            self.settings.forecast_ttl_seconds,
            tags=[forecast_tag(coord.latitude, coord.longitude)],
        )

    def invalidate(self, latitude: float, longitude: float) -> None:
        """Force the next fetch near these coordinates to hit upstream."""
        tag = forecast_tag(latitude, longitude)
        logger.info("Invalidating forecast cache", extra={"cache_tag": tag})
        self.cache.invalidate_tag(tag)
