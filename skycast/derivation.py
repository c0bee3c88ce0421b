"""Pure derivations over raw forecast values: icons, labels, feels-like, daily averages."""
from __future__ import annotations

import math
from typing import Iterable, NamedTuple, Optional

PRECIP_EPSILON = 0.1  # mm at or below which a rainy code is not believed
DRIZZLE_CUTOFF = 0.5  # mm under which measured precipitation shows as drizzle


class WeatherState(NamedTuple):
    """Icon slug and short label for a slot."""
    icon: str
    label: str


class CodeRule(NamedTuple):
    """Inclusive WMO code range mapped to a display state."""
    low: int
    high: int
    icon: str
    label: str


# Reference: https://open-meteo.com/en/docs (WMO weather interpretation codes).
# Evaluated top to bottom; the first matching range wins.
WEATHER_CODE_RULES: tuple[CodeRule, ...] = (
    CodeRule(0, 0, "sun", "Clear sky"),
    CodeRule(1, 2, "cloud-sun", "Partly cloudy"),
    CodeRule(3, 3, "cloud", "Overcast"),
    CodeRule(45, 48, "fog", "Fog"),
    CodeRule(51, 57, "drizzle", "Drizzle"),
    CodeRule(61, 67, "rain", "Rain"),
    CodeRule(71, 77, "snow", "Snow"),
    CodeRule(80, 82, "rain", "Showers"),
    CodeRule(85, 86, "snow", "Snow showers"),
    CodeRule(95, 99, "thunder", "Thunderstorm"),
)

UNAVAILABLE = WeatherState("na", "Unavailable")
UNKNOWN = WeatherState("na", "Unknown")
CLOUDY = WeatherState("cloud-sun", "Cloudy")

RAIN_CODE_RANGES = ((51, 67), (80, 82), (95, 99))
SNOW_CODE_RANGE = (71, 86)

# Ordered by severity; the index is the rank.
PRECIP_LABELS = ("none", "light", "moderate", "heavy")
PRECIP_THRESHOLDS = (
    (1.0, "light"),
    (4.0, "moderate"),
)


def classify_code(code: Optional[int]) -> WeatherState:
    """Map a WMO weather code to an icon and label; unknown codes never raise."""
    if code is None:
        return UNAVAILABLE
    for rule in WEATHER_CODE_RULES:
        if rule.low <= code <= rule.high:
            return WeatherState(rule.icon, rule.label)
    return UNKNOWN


def humanize_precip(mm: Optional[float]) -> str:
    """Return a precipitation label from PRECIP_LABELS for an amount in mm."""
    if mm is None or mm <= 0:
        return "none"
    for upper, label in PRECIP_THRESHOLDS:
        if mm < upper:
            return label
    return "heavy"


def precip_severity(label: str) -> int:
    """Rank of a precipitation label (0 = none)."""
    return PRECIP_LABELS.index(label)


def is_rain_code(code: Optional[int]) -> bool:
    """True for drizzle, rain, freezing rain, showers and thunder codes."""
    if code is None:
        return False
    return any(low <= code <= high for low, high in RAIN_CODE_RANGES)


def is_snow_code(code: Optional[int]) -> bool:
    """True for snow fall, snow grains and snow shower codes."""
    if code is None:
        return False
    low, high = SNOW_CODE_RANGE
    return low <= code <= high


def resolve_hourly_state(code: Optional[int], precip_mm: Optional[float]) -> WeatherState:
    """Reconcile a slot's weather code with its measured precipitation.

    - No measurement: trust the code.
    - At or below PRECIP_EPSILON: rainy codes degrade to a neutral cloudy
      state. Overcast and every non-rain code keep their own classification.
    - Above PRECIP_EPSILON: the amount drives the label; snow codes force a
      snow icon, otherwise drizzle or rain by DRIZZLE_CUTOFF.
    """
    if precip_mm is None:
        return classify_code(code)

    if precip_mm <= PRECIP_EPSILON:
        if is_rain_code(code):
            return CLOUDY
        return classify_code(code)

    label = humanize_precip(precip_mm)
    if is_snow_code(code):
        return WeatherState("snow", label)
    return WeatherState("drizzle" if precip_mm < DRIZZLE_CUTOFF else "rain", label)


def feels_like(temp_c: Optional[float], wind_kmh: Optional[float], rel_humidity: Optional[float]) -> Optional[float]:
    """Apparent temperature (°C) from air temperature, wind speed and relative humidity.

    apparent = T + 0.33e - 0.70 * wind_ms - 4.0, with the vapour pressure
    e = (rh / 100) * 6.105 * exp(17.27 T / (237.7 + T)).
    """
    if temp_c is None or wind_kmh is None or rel_humidity is None:
        return None
    wind_ms = wind_kmh / 3.6
    vapour_pressure = (rel_humidity / 100.0) * 6.105 * math.exp(17.27 * temp_c / (237.7 + temp_c))
    apparent = temp_c + 0.33 * vapour_pressure - 0.70 * wind_ms - 4.0
    return round(apparent, 1)


def average_daily(values: Iterable[Optional[float]]) -> Optional[float]:
    """Arithmetic mean of the non-null values; None for an empty bucket."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)
