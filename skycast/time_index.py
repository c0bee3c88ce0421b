"""Timezone-aware helpers for locating "now" inside an hourly series."""
from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional, Sequence, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="time_index")

Timestamp = Union[str, dt.datetime]


def zone_for(timezone: Union[str, ZoneInfo]) -> ZoneInfo:
    """Return a ZoneInfo; raises ZoneInfoNotFoundError for unknown names."""
    if isinstance(timezone, ZoneInfo):
        return timezone
    try:
        return ZoneInfo(timezone)
    except ValueError as exc:
        # ZoneInfo raises ValueError for malformed keys such as "../etc".
        raise ZoneInfoNotFoundError(str(timezone)) from exc


def parse_local(value: Timestamp, timezone: Union[str, ZoneInfo]) -> Optional[dt.datetime]:
    """Interpret an Open-Meteo local time string as being in `timezone`.

    Naive values are localized; aware values are converted. Returns None for
    anything that does not parse.
    """
    tz = zone_for(timezone)
    if isinstance(value, dt.datetime):
        parsed = value
    else:
        try:
            parsed = dt.datetime.fromisoformat(str(value))
        except (TypeError, ValueError):
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def locate_index(times: Sequence[Timestamp], pivot: Timestamp, timezone: Union[str, ZoneInfo]) -> int:
    """Return the first index whose slot is at or after `pivot`.

    Unparseable slots are skipped. When every slot is before the pivot the last
    index is returned so callers still have something to show; an empty series
    or an unparseable pivot yields 0.
    """
    tz = zone_for(timezone)
    pivot_dt = parse_local(pivot, tz)
    if pivot_dt is None:
        logger.debug("Unparseable pivot; starting at index 0", extra={"pivot": str(pivot)})
        return 0

    for i, raw in enumerate(times):
        slot = parse_local(raw, tz)
        if slot is None:
            continue
        if slot >= pivot_dt:
            return i

    return max(0, len(times) - 1)


def day_bounds(now: dt.datetime) -> tuple[dt.datetime, dt.datetime]:
    """Return the first and last second of `now`'s local calendar day."""
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end = now.replace(hour=23, minute=59, second=59, microsecond=0)
    return start, end


def bucket_by_date(times: Sequence[Timestamp], timezone: Union[str, ZoneInfo]) -> Dict[dt.date, List[int]]:
    """Group hourly indices by the local calendar date they fall on."""
    tz = zone_for(timezone)
    buckets: Dict[dt.date, List[int]] = {}
    for i, raw in enumerate(times):
        slot = parse_local(raw, tz)
        if slot is None:
            continue
        buckets.setdefault(slot.date(), []).append(i)
    return buckets
