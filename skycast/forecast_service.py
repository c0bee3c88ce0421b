"""Turn a raw forecast payload into current, rolling, today and daily views."""
from __future__ import annotations

import datetime as dt
from typing import Any, Iterable, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from skycast import config
from skycast.cache_store import CacheStore, build_cache_store
from skycast.data_sources import UpstreamSource, build_upstream_source
from skycast.derivation import (
    average_daily,
    classify_code,
    feels_like,
    humanize_precip,
    resolve_hourly_state,
)
from skycast.errors import InvalidRequest, NotFound
from skycast.forecast_fetcher import ForecastFetcher
from skycast.geocoding import GeocodeResolver
from skycast.models import Coordinate, DailySummary, ForecastView, GeoMatch, HourlySlot
from skycast.payload import RawForecast, to_float, to_int
from skycast.time_index import bucket_by_date, day_bounds, locate_index, parse_local, zone_for
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_service")

AUTO_TIMEZONE = "auto"


def _normalize_is_day(value: Optional[object]) -> Optional[bool]:
    """Normalize Open-Meteo is_day values (0/1, bool) into bool or None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(int(value))
    logger.debug("Unrecognized is_day value; treating as unknown", extra={"is_day": value})
    return None


def resolve_zone(timezone: str, raw: RawForecast) -> ZoneInfo:
    """Zone used to read payload timestamps; "auto" defers to the zone upstream echoed."""
    if timezone == AUTO_TIMEZONE:
        return zone_for(raw.timezone or "UTC")
    return zone_for(timezone)


def build_slot(
    raw: RawForecast,
    index: int,
    tz: ZoneInfo,
    overrides: Optional[Mapping[str, Any]] = None,
) -> HourlySlot:
    """Build the displayable slot for one hourly index.

    `overrides` replaces individual raw hourly values before derivation; the
    current snapshot uses it to inject its own readings while borrowing the
    fields it lacks from the hourly arrays.
    """
    values = {
        "time": raw.hourly_value("time", index),
        "temperature": raw.hourly_value("temperature_2m", index),
        "apparent_temperature": raw.hourly_value("apparent_temperature", index),
        "wind_speed": raw.hourly_value("wind_speed_10m", index),
        "wind_gusts": raw.hourly_value("wind_gusts_10m", index),
        "wind_direction": raw.hourly_value("wind_direction_10m", index),
        "precipitation": raw.hourly_value("precipitation", index),
        "precipitation_probability": raw.hourly_value("precipitation_probability", index),
        "weather_code": raw.hourly_value("weather_code", index),
        "relative_humidity": raw.hourly_value("relative_humidity_2m", index),
        "uv_index": raw.hourly_value("uv_index", index),
        "is_day": None,
    }
    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})

    temperature = to_float(values["temperature"])
    wind = to_float(values["wind_speed"])
    humidity = to_float(values["relative_humidity"])
    precip = to_float(values["precipitation"])
    code = to_int(values["weather_code"])
    apparent = to_float(values["apparent_temperature"])
    state = resolve_hourly_state(code, precip)

    return HourlySlot(
        time=parse_local(values["time"], tz) if values["time"] is not None else None,
        temperature=temperature,
        feels_like=apparent if apparent is not None else feels_like(temperature, wind, humidity),
        wind=wind,
        gusts=to_float(values["wind_gusts"]),
        wind_direction=to_float(values["wind_direction"]),
        precip=precip,
        precip_probability=to_float(values["precipitation_probability"]),
        precip_label=humanize_precip(precip),
        weather_code=code,
        icon=state.icon,
        label=state.label,
        humidity=humidity,
        uv_index=to_float(values["uv_index"]),
        is_day=_normalize_is_day(values["is_day"]),
    )


def pivot_index(raw: RawForecast, tz: ZoneInfo) -> int:
    """Index of "now" in the hourly arrays, from the current snapshot's time."""
    current = raw.current()
    if not current or not current.get("time"):
        return 0
    return locate_index(raw.times, current["time"], tz)


def build_current(raw: RawForecast, tz: ZoneInfo) -> Optional[HourlySlot]:
    """Current conditions, completed with hourly readings at the pivot index."""
    current = raw.current()
    if current is None:
        return None
    return build_slot(raw, pivot_index(raw, tz), tz, overrides=current)


def build_window(raw: RawForecast, tz: ZoneInfo, window_hours: int) -> List[HourlySlot]:
    """Up to `window_hours` consecutive slots starting at the pivot index."""
    start = pivot_index(raw, tz)
    count = min(max(0, window_hours), max(0, len(raw.times) - start))
    return [build_slot(raw, start + offset, tz) for offset in range(count)]


def build_hours_today(raw: RawForecast, tz: ZoneInfo, now: dt.datetime) -> List[HourlySlot]:
    """Every slot on `now`'s local calendar day, flagged past/now."""
    now = now.astimezone(tz)
    start_of_day, end_of_day = day_bounds(now)
    out: List[HourlySlot] = []
    for i, stamp in enumerate(raw.times):
        slot_time = parse_local(stamp, tz)
        if slot_time is None or not (start_of_day <= slot_time <= end_of_day):
            continue
        slot = build_slot(raw, i, tz)
        slot.is_past = slot_time < now
        slot.is_now = slot_time.hour == now.hour
        out.append(slot)
    return out


def _values_at(raw: RawForecast, field: str, indices: Iterable[int]) -> List[Optional[float]]:
    return [to_float(raw.hourly_value(field, i)) for i in indices]


def build_daily(raw: RawForecast, tz: ZoneInfo) -> List[DailySummary]:
    """One summary per daily entry, with humidity and wind averaged from the hourly series."""
    buckets = bucket_by_date(raw.times, tz)
    out: List[DailySummary] = []
    for i, stamp in enumerate(raw.daily_dates):
        try:
            day = dt.date.fromisoformat(str(stamp))
        except ValueError:
            day = None
        indices = buckets.get(day, []) if day else []
        code = to_int(raw.daily_value("weather_code", i))
        state = classify_code(code)
        precip = to_float(raw.daily_value("precipitation_sum", i))
        out.append(
            DailySummary(
                date=day,
                temp_min=to_float(raw.daily_value("temperature_2m_min", i)),
                temp_max=to_float(raw.daily_value("temperature_2m_max", i)),
                precip_mm=precip,
                precip_label=humanize_precip(precip),
                weather_code=code,
                icon=state.icon,
                label=state.label,
                uv_index_max=to_float(raw.daily_value("uv_index_max", i)),
                avg_humidity=average_daily(_values_at(raw, "relative_humidity_2m", indices)),
                avg_wind=average_daily(_values_at(raw, "wind_speed_10m", indices)),
            )
        )
    return out


def assemble_view(
    payload: dict,
    coord: Coordinate,
    timezone: str,
    window_hours: int,
    *,
    now: Optional[dt.datetime] = None,
    place=None,
) -> ForecastView:
    """Derive every view from one raw payload. Nothing derived is cached."""
    raw = RawForecast(payload)
    raw.require_minimal()
    tz = resolve_zone(timezone, raw)
    now = now or dt.datetime.now(tz)

    view = ForecastView(
        location=coord,
        timezone=tz.key,
        place=place,
        current=build_current(raw, tz),
        hourly_window=build_window(raw, tz, window_hours),
        hours_today=build_hours_today(raw, tz, now),
        daily=build_daily(raw, tz),
    )
    logger.debug(
        "Assembled forecast view",
        extra={
            "window": len(view.hourly_window),
            "hours_today": len(view.hours_today),
            "days": len(view.daily),
        },
    )
    return view


def validate_timezone(timezone: str) -> str:
    """Return `timezone` if it is "auto" or a known IANA name, else raise InvalidRequest."""
    if timezone == AUTO_TIMEZONE:
        return timezone
    try:
        zone_for(timezone)
    except ZoneInfoNotFoundError:
        raise InvalidRequest(f"Invalid timezone: {timezone}")
    return timezone


class ForecastService:
    """Entry points used by the HTTP API and the CLI."""

    def __init__(
        self,
        upstream: UpstreamSource | None = None,
        cache: CacheStore | None = None,
        settings: config.Settings | None = None,
    ) -> None:
        self.settings = settings or config.settings
        self.upstream = upstream or build_upstream_source(self.settings)
        self.cache = cache or build_cache_store(self.settings)
        self.resolver = GeocodeResolver(self.upstream, self.cache, self.settings)
        self.fetcher = ForecastFetcher(self.upstream, self.cache, self.settings)

    def _defaults(self, timezone: Optional[str], hours: Optional[int]) -> tuple[str, int]:
        tz = validate_timezone(timezone or self.settings.default_timezone)
        return tz, self.settings.default_hours if hours is None else hours

    def geocode(self, name: str) -> GeoMatch:
        """Resolve a place name without fetching a forecast."""
        return self.resolver.resolve(name)

    def by_coordinates(
        self,
        latitude: float,
        longitude: float,
        timezone: Optional[str] = None,
        hours: Optional[int] = None,
        *,
        now: Optional[dt.datetime] = None,
    ) -> ForecastView:
        """Forecast view for a coordinate pair."""
        tz, hours = self._defaults(timezone, hours)
        coord = Coordinate(float(latitude), float(longitude))
        payload = self.fetcher.fetch(coord, tz)
        return assemble_view(payload, coord, tz, hours, now=now)

    def by_name(
        self,
        name: str,
        timezone: Optional[str] = None,
        hours: Optional[int] = None,
        *,
        now: Optional[dt.datetime] = None,
    ) -> ForecastView:
        """Forecast view for a free-text place name, with place metadata attached."""
        tz, hours = self._defaults(timezone, hours)
        match = self.resolver.resolve(name)
        coord = match.coordinate
        if coord is None:
            raise NotFound(match.name, "match has no coordinates")
        payload = self.fetcher.fetch(coord, tz)
        return assemble_view(payload, coord, tz, hours, now=now, place=match.place)

    def invalidate(self, latitude: float, longitude: float) -> None:
        """Drop cached payloads for this location."""
        self.fetcher.invalidate(float(latitude), float(longitude))

    def clear_cache(self) -> None:
        """Drop every cached geocoding result and forecast payload."""
        logger.info("Clearing forecast cache")
        self.cache.clear()
