import os
import unittest

from pydantic import ValidationError

from outdoor_planner.config import Settings


class TestConfig(unittest.TestCase):
    def _with_env(self, name, value):
        previous = os.environ.get(name)
        os.environ[name] = value
        self.addCleanup(self._restore, name, previous)

    @staticmethod
    def _restore(name, previous):
        if previous is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = previous

    def test_settings_defaults(self):
        s = Settings(_env_file=None)
        self.assertEqual(s.forecast_source, "openweather")
        self.assertEqual(s.forecast_hours, 24)
        self.assertEqual(s.location_ttl_seconds, 3600)
        self.assertEqual(s.default_latitude, 40.7128)
        self.assertEqual(s.default_longitude, -74.0060)
        self.assertEqual(s.default_location_name, "New York")

    def test_settings_env_override(self):
        self._with_env("PLANNER_FORECAST_SOURCE", "open_meteo")
        self._with_env("PLANNER_OPEN_METEO_URL", "http://example.com/forecast/")
        s = Settings(_env_file=None)
        self.assertEqual(s.forecast_source, "open_meteo")
        self.assertEqual(s.open_meteo_url, "http://example.com/forecast")

    def test_forecast_hours_is_capped(self):
        self._with_env("PLANNER_FORECAST_HOURS", "48")
        self.assertEqual(Settings(_env_file=None).forecast_hours, 24)

    def test_forecast_hours_must_be_positive(self):
        self._with_env("PLANNER_FORECAST_HOURS", "0")
        with self.assertRaises(ValidationError):
            Settings(_env_file=None)


if __name__ == "__main__":
    unittest.main()
