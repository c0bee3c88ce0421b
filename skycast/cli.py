"""Command-line maintenance helpers: invalidate a cached forecast or print one."""

import argparse
import json
import sys
from typing import Optional, Sequence

from skycast.config import settings
from skycast.errors import ForecastError
from skycast.forecast_service import ForecastService
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="cli")


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the `skycast` command."""
    parser = argparse.ArgumentParser(prog="skycast", description="SkyCast forecast engine utilities.")
    sub = parser.add_subparsers(dest="command", required=True)

    inv = sub.add_parser("invalidate", help="Invalidate cached forecast for a coordinate pair.")
    inv.add_argument("lat", type=float, help="Latitude")
    inv.add_argument("lon", type=float, help="Longitude")

    sub.add_parser("clear-cache", help="Drop every cached geocoding result and forecast.")

    fc = sub.add_parser("forecast", help="Print the forecast view as JSON.")
    where = fc.add_mutually_exclusive_group(required=True)
    where.add_argument("--city", help="Free-text place name")
    where.add_argument("--coords", nargs=2, type=float, metavar=("LAT", "LON"))
    fc.add_argument("--tz", default=None, help="IANA timezone or 'auto'")
    fc.add_argument("--hours", type=int, default=None, help="Rolling window size")
    return parser


def main(argv: Optional[Sequence[str]] = None, service: ForecastService | None = None) -> int:
    """Run the CLI; returns the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(level=settings.log_level, job_name=f"skycast_{args.command}")
    service = service or ForecastService()

    if args.command == "invalidate":
        service.invalidate(args.lat, args.lon)
        print(f"Cache invalidated for coordinates {args.lat:.2f}, {args.lon:.2f}")
        return 0

    if args.command == "clear-cache":
        service.clear_cache()
        print("Cache cleared")
        return 0

    try:
        if args.city:
            view = service.by_name(args.city, timezone=args.tz, hours=args.hours)
        else:
            lat, lon = args.coords
            view = service.by_coordinates(lat, lon, timezone=args.tz, hours=args.hours)
    except ForecastError as exc:
        logger.error("Forecast failed: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(view.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
