"""HTTP API exposing forecast views and cache maintenance."""

import hmac
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status
from pydantic import BaseModel

from .config import settings
from .errors import ForecastError, InvalidRequest, MalformedPayload, NotFound, TransportFailure
from .forecast_service import ForecastService
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="skycast/api")


def require_api_key(x_api_key: str | None = Header(default=None)):
    """Validate X-API-Key against the configured static key, if any."""
    if not settings.api_key:
        return
    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")
    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return
    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])

_service: ForecastService = ForecastService()


def get_service() -> ForecastService:
    """Return the process-wide ForecastService built at import."""
    return _service


class Location(BaseModel):
    latitude: float
    longitude: float


class PlaceOut(BaseModel):
    name: str
    country: str = ""
    admin1: str = ""


class Slot(BaseModel):
    """Serialized hourly slot."""
    time: Optional[dt.datetime] = None
    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    wind: Optional[float] = None
    gusts: Optional[float] = None
    wind_direction: Optional[float] = None
    precip: Optional[float] = None
    precip_probability: Optional[float] = None
    precip_label: str
    weather_code: Optional[int] = None
    icon: str
    label: str
    humidity: Optional[float] = None
    uv_index: Optional[float] = None
    is_day: Optional[bool] = None
    is_past: Optional[bool] = None
    is_now: Optional[bool] = None


class Day(BaseModel):
    """Serialized daily summary."""
    date: Optional[dt.date] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    precip_mm: Optional[float] = None
    precip_label: str
    weather_code: Optional[int] = None
    icon: str
    label: str
    uv_index_max: Optional[float] = None
    avg_humidity: Optional[float] = None
    avg_wind: Optional[float] = None


class ForecastResponse(BaseModel):
    """Forecast views for one location."""
    location: Location
    timezone: str
    place: Optional[PlaceOut] = None
    current: Optional[Slot] = None
    hourly_window: list[Slot] = []
    hours_today: list[Slot] = []
    daily: list[Day] = []


class GeocodeResponse(BaseModel):
    """First geocoding match for a query."""
    query: str
    result: dict


def _raise_http(exc: ForecastError):
    """Map engine failures onto HTTP errors."""
    if isinstance(exc, InvalidRequest):
        raise HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotFound):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (TransportFailure, MalformedPayload)):
        logger.warning("Upstream failure", extra={"error": str(exc)})
        raise HTTPException(status_code=502, detail="Unable to fetch forecast.")
    raise HTTPException(status_code=500, detail="Unexpected forecast error.")


def _clamp_hours(hours: Optional[int]) -> int:
    if hours is None:
        return settings.default_hours
    return max(1, min(hours, settings.max_hours))


@router.get("/forecast", response_model=ForecastResponse)
def forecast(
    city: Optional[str] = Query(default=None),
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lon: Optional[float] = Query(default=None, ge=-180, le=180),
    tz: Optional[str] = Query(default=None),
    hours: Optional[int] = Query(default=None),
):
    """Forecast by city name (?city=Paris) or coordinates (?lat=48.85&lon=2.35)."""
    service = get_service()
    window = _clamp_hours(hours)
    try:
        if city and city.strip():
            view = service.by_name(city, timezone=tz, hours=window)
        elif lat is not None and lon is not None:
            view = service.by_coordinates(lat, lon, timezone=tz, hours=window)
        else:
            raise HTTPException(status_code=400, detail="Provide either city or lat and lon.")
    except ForecastError as exc:
        _raise_http(exc)
    return ForecastResponse.model_validate(view.to_dict())


@router.post("/forecast/invalidate", status_code=status.HTTP_204_NO_CONTENT)
def invalidate_forecast(
    lat: float = Query(ge=-90, le=90),
    lon: float = Query(ge=-180, le=180),
):
    """Force the next forecast request for these coordinates to refetch upstream."""
    get_service().invalidate(lat, lon)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/debug/geocode", response_model=GeocodeResponse)
def debug_geocode(city: str = Query(default="")):
    """Development-only view of the raw geocoding match."""
    if not settings.debug:
        raise HTTPException(status_code=404, detail="Not Found")
    if not city.strip():
        raise HTTPException(status_code=400, detail="Missing query: city")
    try:
        match = get_service().geocode(city)
    except ForecastError as exc:
        _raise_http(exc)
    return GeocodeResponse(
        query=city,
        result={
            "name": match.name,
            "latitude": match.latitude,
            "longitude": match.longitude,
            "country": match.country,
            "admin1": match.admin1,
        },
    )
