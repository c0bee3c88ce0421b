import unittest

from skycast.data_sources.base import CallableUpstreamSource
from skycast.data_sources.factory import DEFAULT_SOURCE_NAME, build_upstream_source


class DummySettings:
    def __init__(self, **kwargs):
        self.upstream_source = kwargs.get("upstream_source", DEFAULT_SOURCE_NAME)


class TestDataSourceFactory(unittest.TestCase):
    def test_build_open_meteo_default(self):
        source = build_upstream_source(DummySettings(upstream_source="open_meteo"))
        self.assertIsInstance(source, CallableUpstreamSource)

    def test_unknown_source_raises(self):
        with self.assertRaises(ValueError):
            build_upstream_source(DummySettings(upstream_source="unknown-source"))

    def test_callable_source_delegates(self):
        source = CallableUpstreamSource(
            places=lambda name, **kw: {"name": name, **kw},
            forecast=lambda lat, lon, **kw: {"lat": lat, "lon": lon, **kw},
        )
        self.assertEqual(source.search_places("Lyon", count=1, language="fr"),
                         {"name": "Lyon", "count": 1, "language": "fr"})
        self.assertEqual(source.fetch_forecast_payload(1.0, 2.0, timezone="UTC"),
                         {"lat": 1.0, "lon": 2.0, "timezone": "UTC"})


if __name__ == "__main__":
    unittest.main()
