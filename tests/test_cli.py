import io
import json
import unittest
from contextlib import redirect_stderr, redirect_stdout

from skycast.cache_store.memory import InMemoryCacheStore
from skycast.cli import build_parser, main
from skycast.config import Settings
from skycast.data_sources import CallableUpstreamSource
from skycast.errors import TransportFailure
from skycast.forecast_service import ForecastService
from utils.logging_utils import setup_logging


def _payload():
    return {
        "timezone": "Europe/Paris",
        "hourly": {
            "time": ["2025-10-09T10:00", "2025-10-09T11:00", "2025-10-09T12:00"],
            "temperature_2m": [11.0, 12.0, 13.0],
        },
        "current": {"time": "2025-10-09T11:00", "temperature_2m": 12.4},
    }


class StubUpstream:
    def __init__(self, exc=None):
        self.exc = exc
        self.forecast_calls = 0

    def places(self, name, *, count=1, language="fr"):
        return {"results": [{"name": "Paris", "latitude": 48.8566, "longitude": 2.3522, "country": "France"}]}

    def forecast(self, latitude, longitude, *, timezone, forecast_days):
        self.forecast_calls += 1
        if self.exc:
            raise self.exc
        return _payload()


def _service(upstream):
    return ForecastService(
        upstream=CallableUpstreamSource(places=upstream.places, forecast=upstream.forecast),
        cache=InMemoryCacheStore(),
        settings=Settings(),
    )


def _run(argv, service):
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = main(argv, service=service)
    return code, out.getvalue(), err.getvalue()


class TestCli(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        # bind log handlers to the real streams before output is captured
        setup_logging(level="INFO", job_name="skycast_test")

    def test_parser_requires_command(self):
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            build_parser().parse_args([])

    def test_city_and_coords_are_exclusive(self):
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            build_parser().parse_args(["forecast", "--city", "Paris", "--coords", "1", "2"])

    def test_invalidate_prints_confirmation_and_drops_cache(self):
        upstream = StubUpstream()
        service = _service(upstream)
        service.by_coordinates(48.8566, 2.3522, "Europe/Paris", 2)

        code, out, _ = _run(["invalidate", "48.8566", "2.3522"], service)

        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "Cache invalidated for coordinates 48.86, 2.35")
        service.by_coordinates(48.8566, 2.3522, "Europe/Paris", 2)
        self.assertEqual(upstream.forecast_calls, 2)

    def test_clear_cache_drops_every_entry(self):
        upstream = StubUpstream()
        service = _service(upstream)
        service.by_coordinates(48.8566, 2.3522, "Europe/Paris", 2)
        service.by_coordinates(45.764, 4.8357, "Europe/Paris", 2)

        code, out, _ = _run(["clear-cache"], service)

        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), "Cache cleared")
        service.by_coordinates(48.8566, 2.3522, "Europe/Paris", 2)
        service.by_coordinates(45.764, 4.8357, "Europe/Paris", 2)
        self.assertEqual(upstream.forecast_calls, 4)

    def test_forecast_by_city_prints_json(self):
        code, out, _ = _run(["forecast", "--city", "Paris", "--hours", "2", "--tz", "Europe/Paris"],
                            _service(StubUpstream()))
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["place"]["name"], "Paris")
        self.assertEqual([s["temperature"] for s in data["hourly_window"]], [12.0, 13.0])
        self.assertEqual(data["current"]["temperature"], 12.4)

    def test_forecast_by_coords(self):
        code, out, _ = _run(["forecast", "--coords", "48.8566", "2.3522"], _service(StubUpstream()))
        self.assertEqual(code, 0)
        self.assertIsNone(json.loads(out)["place"])

    def test_failure_exits_non_zero(self):
        upstream = StubUpstream(exc=TransportFailure("https://api.open-meteo.com/v1/forecast", "boom"))
        code, out, err = _run(["forecast", "--coords", "1", "2"], _service(upstream))
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("error:", err)


if __name__ == "__main__":
    unittest.main()
