import unittest

from outdoor_planner.data_sources import open_meteo_client, openweather_client
from outdoor_planner.data_sources.factory import build_data_source, DEFAULT_SOURCE_NAME
from outdoor_planner.data_sources.base import CallableForecastDataSource


class DummySettings:
    def __init__(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)
        # provide defaults if not passed
        self.forecast_source = getattr(self, "forecast_source", DEFAULT_SOURCE_NAME)
        self.openweather_api_key = getattr(self, "openweather_api_key", None)


class TestDataSourceFactory(unittest.TestCase):
    def test_default_is_openweather(self):
        ds = build_data_source(DummySettings(openweather_api_key="k"))
        self.assertIsInstance(ds, CallableForecastDataSource)
        self.assertEqual(ds.name, "openweather")
        self.assertIs(ds.current, openweather_client.fetch_current)
        self.assertIs(ds.hours, openweather_client.fetch_hours)
        self.assertIs(ds.forecast, openweather_client.fetch_forecast)

    def test_openweather_without_key_still_builds(self):
        with self.assertLogs("outdoor_planner.data_sources.factory", level="WARNING"):
            ds = build_data_source(DummySettings(forecast_source="openweather"))
        self.assertEqual(ds.name, "openweather")

    def test_build_open_meteo(self):
        ds = build_data_source(DummySettings(forecast_source="Open_Meteo"))
        self.assertEqual(ds.name, "open_meteo")
        self.assertIs(ds.current, open_meteo_client.fetch_current)

    def test_unknown_source_raises(self):
        with self.assertRaises(ValueError):
            build_data_source(DummySettings(forecast_source="unknown-source"))

    def test_callable_source_delegates(self):
        ds = CallableForecastDataSource(
            current=lambda lat, lon, **kw: ("current", lat, lon, kw),
            hours=lambda lat, lon, **kw: ["hour", lat, lon, kw],
        )
        self.assertEqual(ds.fetch_current(1, 2, timezone="UTC"), ("current", 1, 2, {"timezone": "UTC"}))
        self.assertEqual(ds.fetch_hours(1, 2, hours=3), ["hour", 1, 2, {"hours": 3}])

    def test_callable_source_prefers_single_forecast_call(self):
        calls = []

        def fake_forecast(lat, lon, *, timezone="auto", hours=24):
            calls.append((lat, lon, timezone, hours))
            return "combined"

        def unexpected(*args, **kwargs):
            raise AssertionError("split fetch should not be used")

        ds = CallableForecastDataSource(current=unexpected, hours=unexpected, forecast=fake_forecast)

        self.assertEqual(ds.fetch_forecast(1, 2, hours=5), "combined")
        self.assertEqual(calls, [(1, 2, "auto", 5)])

    def test_callable_source_combines_split_fetches_without_forecast(self):
        ds = CallableForecastDataSource(current=lambda *a, **k: None, hours=lambda *a, **k: [])
        forecast = ds.fetch_forecast(1, 2)
        self.assertIsNone(forecast.current)
        self.assertEqual(forecast.hourly, [])


if __name__ == "__main__":
    unittest.main()
