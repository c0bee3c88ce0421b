"""Helpers for calling the Open-Meteo geocoding and forecast APIs."""
from __future__ import annotations

from typing import Any, Optional

import requests
from retry_requests import retry

from skycast.config import settings
from skycast.errors import TransportFailure
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="open_meteo_client")

session = retry(requests.Session(), retries=settings.http_retries, backoff_factor=settings.http_backoff_factor)

HOURLY_VARS = [
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "precipitation",
    "precipitation_probability",
    "weather_code",
    "wind_speed_10m",
    "wind_gusts_10m",
    "wind_direction_10m",
    "uv_index",
]

DAILY_VARS = [
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "uv_index_max",
]

CURRENT_VARS = [
    "temperature_2m",
    "wind_speed_10m",
    "wind_direction_10m",
    "weather_code",
    "is_day",
]

EXPECTED_HOURLY_UNITS = {
    "temperature_2m": "°C",
    "apparent_temperature": "°C",
    "relative_humidity_2m": "%",
    "precipitation": "mm",
    "precipitation_probability": "%",
    "wind_speed_10m": "km/h",
    "wind_gusts_10m": "km/h",
    "wind_direction_10m": "°",
    "uv_index": "",
}

# Alternative spellings the API emits that should not trigger warnings.
ALLOWED_HOURLY_UNIT_SYNONYMS = {
    "relative_humidity_2m": {"%", "percent"},
    "precipitation_probability": {"%", "percent"},
    "wind_direction_10m": {"°", "deg", "degrees"},
    "uv_index": {"", "index", "UV-index"},
}


def _warn_on_unexpected_units(units: Optional[dict], *, context: str) -> None:
    """Log a warning if Open-Meteo returns units the derivations do not assume."""
    if not units:
        return
    for field, expected in EXPECTED_HOURLY_UNITS.items():
        if field not in units:
            continue
        actual = units.get(field)
        if actual is None or actual == expected:
            continue
        allowed = ALLOWED_HOURLY_UNIT_SYNONYMS.get(field, set())
        if actual not in allowed:
            logger.warning(
                "Unexpected Open-Meteo unit",
                extra={"context": context, "field": field, "unit": actual, "expected": expected},
            )


def _client_error_body(resp) -> Optional[dict]:
    """Decoded body of a 4xx response when upstream explains the rejection, else None."""
    status = getattr(resp, "status_code", None)
    if not isinstance(status, int) or not 400 <= status < 500:
        return None
    try:
        data = resp.json()
    except ValueError:
        return None
    if isinstance(data, dict) and (data.get("error") or data.get("reason")):
        return data
    return None


def http_get(url: str, params: dict[str, Any], timeout: float, *, error_body_ok: bool = False) -> dict:
    """GET `url` and return the decoded JSON object, or raise TransportFailure.

    With `error_body_ok`, a 4xx answer carrying an Open-Meteo error body
    (`{"error": true, "reason": ...}`) is returned instead of raised.
    """
    try:
        resp = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Upstream request failed", extra={"url": url, "error": str(exc)})
        raise TransportFailure(url, str(exc)) from exc

    try:
        resp.raise_for_status()
    except requests.HTTPError as exc:
        body = _client_error_body(resp) if error_body_ok else None
        if body is None:
            logger.warning("Upstream request failed", extra={"url": url, "error": str(exc)})
            raise TransportFailure(url, str(exc)) from exc
        logger.info("Upstream rejected request", extra={"url": url, "reason": body.get("reason")})
        return body

    try:
        data = resp.json()
    except ValueError as exc:
        logger.warning("Upstream returned invalid JSON", extra={"url": url, "error": str(exc)})
        raise TransportFailure(url, f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise TransportFailure(url, f"expected a JSON object, got {type(data).__name__}")
    return data


def search_places(name: str, *, count: int = 1, language: str = "fr") -> dict:
    """Query the geocoding endpoint and return its raw JSON body, error bodies included."""
    params = {
        "name": name,
        "count": count,
        "language": language,
        "format": "json",
    }
    logger.debug("Geocoding search", extra={"query": name, "language": language, "count": count})
    return http_get(settings.geocoding_url, params, settings.http_timeout_seconds, error_body_ok=True)


def fetch_forecast_payload(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "Europe/Paris",
    forecast_days: int = 7,
) -> dict:
    """Fetch hourly, daily and current forecast arrays for the given coordinates."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "timezone": timezone,
        "hourly": ",".join(HOURLY_VARS),
        "daily": ",".join(DAILY_VARS),
        "current": ",".join(CURRENT_VARS),
        "forecast_days": forecast_days,
        "temperature_unit": "celsius",
        "wind_speed_unit": "kmh",
        "precipitation_unit": "mm",
    }
    logger.debug(
        "Fetching forecast payload",
        extra={"latitude": latitude, "longitude": longitude, "timezone": timezone, "forecast_days": forecast_days},
    )
    data = http_get(settings.forecast_url, params, settings.http_timeout_seconds)

    # Open-Meteo reports bad parameters with a 200-range body on some mirrors.
    if data.get("error"):
        raise TransportFailure(settings.forecast_url, str(data.get("reason") or "upstream error"))

    _warn_on_unexpected_units(data.get("hourly_units"), context="forecast_hourly")
    return data
