"""Interfaces and helpers for upstream forecast sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol


class UpstreamSource(Protocol):
    """Interface for anything that can answer geocoding and forecast queries."""

    def search_places(self, name: str, *, count: int = 1, language: str = "fr") -> dict:
        """Return the raw geocoding response body."""
        ...

    def fetch_forecast_payload(
        self,
        latitude: float,
        longitude: float,
        *,
        timezone: str = "Europe/Paris",
        forecast_days: int = 7,
    ) -> dict:
        """Return the raw forecast response body."""
        ...


@dataclass
class CallableUpstreamSource(UpstreamSource):
    """Wrap two callables so they can be swapped for different backends."""

    places: Callable[..., dict]
    forecast: Callable[..., dict]

    def search_places(self, *args, **kwargs) -> dict:
        """Delegate to the configured geocoding callable."""
        return self.places(*args, **kwargs)

    def fetch_forecast_payload(self, *args, **kwargs) -> dict:
        """Delegate to the configured forecast callable."""
        return self.forecast(*args, **kwargs)
