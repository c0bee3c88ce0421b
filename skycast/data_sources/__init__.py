"""Upstream sources for geocoding and raw forecast payloads."""

from .base import CallableUpstreamSource, UpstreamSource
from .factory import build_upstream_source
from .open_meteo_client import fetch_forecast_payload, http_get, search_places

__all__ = [
    "build_upstream_source",
    "UpstreamSource",
    "CallableUpstreamSource",
    "fetch_forecast_payload",
    "http_get",
    "search_places",
]
