"""Factory helpers for choosing an upstream source at startup."""

from __future__ import annotations

from skycast import config
from skycast.data_sources.base import CallableUpstreamSource, UpstreamSource
from skycast.data_sources.open_meteo_client import fetch_forecast_payload, search_places
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "open_meteo"


def build_upstream_source(settings: config.Settings | None = None) -> UpstreamSource:
    """Instantiate the configured upstream source."""
    settings = settings or config.settings
    source = (settings.upstream_source or DEFAULT_SOURCE_NAME).lower()

    if source == "open_meteo":
        logger.info("Using Open-Meteo upstream source")
        return CallableUpstreamSource(places=search_places, forecast=fetch_forecast_payload)

    raise ValueError(f"Unknown upstream source '{source}'")
