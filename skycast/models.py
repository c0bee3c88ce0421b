"""Domain records produced by the forecast engine."""
from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class Coordinate:
    """A resolved latitude/longitude pair. Full precision is kept for upstream calls."""
    latitude: float
    longitude: float


@dataclass
class Place:
    """Human-readable metadata for a place resolved from free text."""
    name: str
    country: str = ""
    admin1: str = ""


@dataclass
class GeoMatch:
    """First geocoding result for a query."""
    name: str
    latitude: Optional[float]
    longitude: Optional[float]
    country: str = ""
    admin1: str = ""

    @property
    def coordinate(self) -> Optional[Coordinate]:
        """The match's coordinate, or None when upstream omitted either axis."""
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(self.latitude, self.longitude)

    @property
    def place(self) -> Place:
        return Place(name=self.name, country=self.country, admin1=self.admin1)


@dataclass
class HourlySlot:
    """Displayable conditions for one hourly index of a forecast payload."""
    time: Optional[dt.datetime]  # timezone-aware, None if upstream sent an unparseable stamp
    temperature: Optional[float]
    feels_like: Optional[float]
    wind: Optional[float]
    gusts: Optional[float]
    wind_direction: Optional[float]
    precip: Optional[float]
    precip_probability: Optional[float]
    precip_label: str
    weather_code: Optional[int]
    icon: str
    label: str
    humidity: Optional[float]
    uv_index: Optional[float]
    is_day: Optional[bool] = None
    # only set for the "today" view
    is_past: Optional[bool] = None
    is_now: Optional[bool] = None


@dataclass
class DailySummary:
    """One forecast day, enriched with averages computed from the hourly series."""
    date: Optional[dt.date]
    temp_min: Optional[float]
    temp_max: Optional[float]
    precip_mm: Optional[float]
    precip_label: str
    weather_code: Optional[int]
    icon: str
    label: str
    uv_index_max: Optional[float]
    avg_humidity: Optional[float]
    avg_wind: Optional[float]


def _json_safe(value: Any) -> Any:
    """Convert dates and datetimes inside nested containers to ISO strings."""
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_json_safe(v) for v in value]
    return value


@dataclass
class ForecastView:
    """Everything the presentation layer needs for one location."""
    location: Coordinate
    timezone: str
    place: Optional[Place] = None
    current: Optional[HourlySlot] = None
    hourly_window: List[HourlySlot] = field(default_factory=list)
    hours_today: List[HourlySlot] = field(default_factory=list)
    daily: List[DailySummary] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Return a JSON-safe dict for API serialization."""
        return _json_safe(asdict(self))
