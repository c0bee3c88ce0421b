import unittest

from skycast.main import app


class TestMain(unittest.TestCase):
    def test_app_metadata(self):
        self.assertEqual(app.title, "SkyCast")

    def test_routes_mounted_under_version_prefix(self):
        paths = {route.path for route in app.routes}
        self.assertIn("/health", paths)
        self.assertIn("/v1/forecast", paths)
        self.assertIn("/v1/forecast/invalidate", paths)
        self.assertIn("/v1/debug/geocode", paths)


if __name__ == "__main__":
    unittest.main()
