"""Failure types raised by the forecast engine.

All of them are recoverable at the caller boundary: the HTTP layer and the CLI
turn them into an error response or exit code instead of crashing.
"""
from __future__ import annotations

from typing import Optional


class ForecastError(Exception):
    """Base class for every failure the engine reports to its callers."""


class NotFound(ForecastError):
    """No geocoding match after every fallback attempt."""

    def __init__(self, query: str, reason: Optional[str] = None) -> None:
        self.query = query
        self.reason = reason
        message = f"No place found for '{query}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class TransportFailure(ForecastError):
    """Network, timeout, HTTP status or JSON decoding error talking to an upstream endpoint."""

    def __init__(self, url: str, detail: str) -> None:
        self.url = url
        self.detail = detail
        super().__init__(f"Upstream request to {url} failed: {detail}")


class MalformedPayload(ForecastError):
    """Upstream answered but the payload lacks the minimal hourly arrays."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Forecast payload missing required fields: {', '.join(missing)}")


class InvalidRequest(ForecastError):
    """Caller supplied an unusable parameter, such as an unknown timezone."""
