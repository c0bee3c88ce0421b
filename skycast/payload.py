"""Read-only accessors over a raw Open-Meteo forecast payload.

The payload is cached verbatim, so everything here reads without mutating it.
Both the current response shape (`current`, `weather_code`) and the legacy one
(`current_weather`, `weathercode`, `temperature`, `windspeed`) are understood.
"""
from __future__ import annotations

from typing import Any, List, Optional

from skycast.errors import MalformedPayload

REQUIRED_HOURLY_FIELDS = ("time", "temperature_2m")

# Preferred key first, legacy spellings after.
_HOURLY_ALIASES = {
    "weather_code": ("weather_code", "weathercode"),
}
_DAILY_ALIASES = {
    "weather_code": ("weather_code", "weathercode"),
}
_CURRENT_ALIASES = {
    "time": ("time",),
    "temperature": ("temperature_2m", "temperature"),
    "apparent_temperature": ("apparent_temperature",),
    "wind_speed": ("wind_speed_10m", "windspeed"),
    "wind_direction": ("wind_direction_10m", "winddirection"),
    "weather_code": ("weather_code", "weathercode"),
    "precipitation": ("precipitation",),
    "is_day": ("is_day",),
}


def _first_present(block: dict, keys: tuple) -> Any:
    """Return the first key of `keys` present in `block`, or None."""
    for key in keys:
        if key in block:
            return block[key]
    return None


def _get_at(column: Optional[list], index: int) -> Any:
    """Safely get value at index from a column array, returning None if missing."""
    if column is None or index < 0 or index >= len(column):
        return None
    return column[index]


def to_float(value: Any) -> Optional[float]:
    """Coerce an upstream number to float; None for missing or non-numeric values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any) -> Optional[int]:
    """Coerce an upstream weather code to int; None for missing or non-numeric values."""
    number = to_float(value)
    return int(number) if number is not None else None


class RawForecast:
    """Column-oriented view over a forecast payload dict."""

    def __init__(self, payload: dict) -> None:
        self.payload = payload if isinstance(payload, dict) else {}
        hourly = self.payload.get("hourly")
        daily = self.payload.get("daily")
        self._hourly: dict = hourly if isinstance(hourly, dict) else {}
        self._daily: dict = daily if isinstance(daily, dict) else {}

    def missing_required(self) -> List[str]:
        """Names of the minimal hourly arrays absent from the payload."""
        return [
            f"hourly.{name}"
            for name in REQUIRED_HOURLY_FIELDS
            if not isinstance(self._hourly.get(name), list)
        ]

    def require_minimal(self) -> None:
        """Raise MalformedPayload unless hourly time and temperature arrays exist."""
        missing = self.missing_required()
        if missing:
            raise MalformedPayload(missing)

    @property
    def timezone(self) -> Optional[str]:
        """Timezone name echoed by upstream (useful when the request asked for "auto")."""
        tz = self.payload.get("timezone")
        return tz if isinstance(tz, str) and tz else None

    @property
    def times(self) -> list:
        times = self._hourly.get("time")
        return times if isinstance(times, list) else []

    def hourly_value(self, field: str, index: int) -> Any:
        """Value of an hourly field at `index`; an absent array reads as all-None."""
        column = _first_present(self._hourly, _HOURLY_ALIASES.get(field, (field,)))
        return _get_at(column if isinstance(column, list) else None, index)

    @property
    def daily_dates(self) -> list:
        dates = self._daily.get("time")
        return dates if isinstance(dates, list) else []

    def daily_value(self, field: str, index: int) -> Any:
        """Value of a daily field at `index`; an absent array reads as all-None."""
        column = _first_present(self._daily, _DAILY_ALIASES.get(field, (field,)))
        return _get_at(column if isinstance(column, list) else None, index)

    def current(self) -> Optional[dict]:
        """Normalized current snapshot, or None when upstream sent none."""
        block = self.payload.get("current")
        if not isinstance(block, dict):
            block = self.payload.get("current_weather")
        if not isinstance(block, dict):
            return None
        return {name: _first_present(block, keys) for name, keys in _CURRENT_ALIASES.items()}
