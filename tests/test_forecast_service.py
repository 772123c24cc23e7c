import datetime as dt
import unittest
from zoneinfo import ZoneInfo

from outdoor_planner import forecast_service
from outdoor_planner.cache_store import InMemoryKeyValueStore
from outdoor_planner.data_sources.base import CallableForecastDataSource
from outdoor_planner.models import CurrentWeather, HourlyForecast, WeatherForecast

TZ = ZoneInfo("Europe/Paris")


def _hour(h: int, day: int = 1) -> HourlyForecast:
    t = dt.datetime(2024, 6, day, h, 0, tzinfo=TZ)
    return HourlyForecast(
        time=t,
        timestamp=int(t.timestamp()),
        temperature=18.0 + h,
        wind_speed=3.0,
        humidity=50.0,
        precipitation=0.1,
        condition="Clear",
    )


def _current(h: int = 10, minute: int = 30) -> CurrentWeather:
    return CurrentWeather(time=dt.datetime(2024, 6, 1, h, minute, tzinfo=TZ), temperature=20.0, condition="Clear")


class TestGetForecast(unittest.TestCase):
    def test_trims_past_hours_sorts_and_limits(self):
        calls = {}

        def fake_hours(lat, lon, *, timezone="auto", hours=24):
            calls["hours"] = hours
            return [_hour(13), _hour(8), _hour(10), _hour(9), _hour(12), _hour(11)]

        ds = CallableForecastDataSource(current=lambda lat, lon, *, timezone="auto": _current(), hours=fake_hours)

        forecast = forecast_service.get_forecast(48.85, 2.35, hours=3, data_source=ds)

        self.assertEqual(calls["hours"], 3)
        self.assertEqual([h.hour_of_day for h in forecast.hourly], [10, 11, 12])
        self.assertEqual(forecast.timezone, "Europe/Paris")
        self.assertEqual(forecast.current.condition, "Clear")

    def test_hours_are_capped_at_one_day(self):
        calls = {}

        def fake_hours(lat, lon, *, timezone="auto", hours=24):
            calls["hours"] = hours
            return [_hour(h) for h in range(10, 24)] + [_hour(h, day=2) for h in range(0, 23)]

        ds = CallableForecastDataSource(current=lambda *a, **k: _current(), hours=fake_hours)
        forecast = forecast_service.get_forecast(48.85, 2.35, hours=100, data_source=ds)

        self.assertEqual(calls["hours"], 24)
        self.assertEqual(len(forecast.hourly), 24)

    def test_all_past_hours_are_kept_rather_than_dropped(self):
        ds = CallableForecastDataSource(
            current=lambda *a, **k: _current(h=23),
            hours=lambda *a, **k: [_hour(8), _hour(9)],
        )
        forecast = forecast_service.get_forecast(48.85, 2.35, data_source=ds)
        self.assertEqual([h.hour_of_day for h in forecast.hourly], [8, 9])

    def test_timezone_from_hours_when_no_current(self):
        ds = CallableForecastDataSource(current=lambda *a, **k: None, hours=lambda *a, **k: [_hour(9)])
        forecast = forecast_service.get_forecast(48.85, 2.35, data_source=ds)
        self.assertIsNone(forecast.current)
        self.assertEqual(forecast.timezone, "Europe/Paris")

    def test_uses_single_combined_fetch_when_available(self):
        calls = []

        def fake_forecast(lat, lon, *, timezone="auto", hours=24):
            calls.append(hours)
            return WeatherForecast(current=_current(), hourly=[_hour(11), _hour(10), _hour(9)])

        def unexpected(*args, **kwargs):
            raise AssertionError("split fetch should not be used")

        ds = CallableForecastDataSource(current=unexpected, hours=unexpected, forecast=fake_forecast)
        forecast = forecast_service.get_forecast(48.85, 2.35, hours=6, data_source=ds)

        self.assertEqual(calls, [6])
        self.assertEqual([h.hour_of_day for h in forecast.hourly], [10, 11])
        self.assertEqual(forecast.timezone, "Europe/Paris")


class TestForecastCache(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryKeyValueStore()
        self.forecast = WeatherForecast(current=_current(), hourly=[_hour(10), _hour(11)], timezone="Europe/Paris")

    def test_cache_key_rounds_coordinates(self):
        self.assertEqual(forecast_service.cache_key(48.85661, 2.35222), "forecast:48.86:2.35")
        self.assertEqual(forecast_service.cache_key(48.8571, 2.3518), forecast_service.cache_key(48.8569, 2.3521))

    def test_store_and_read_back(self):
        forecast_service.store_forecast(self.store, 48.85, 2.35, self.forecast, ttl_seconds=60, source="open_meteo")

        cached = forecast_service.get_cached_forecast(self.store, 48.85, 2.35, ttl_seconds=60)

        self.assertIsNotNone(cached)
        self.assertEqual(cached.source, "open_meteo")
        self.assertEqual(cached.data.timezone, "Europe/Paris")
        self.assertEqual(len(cached.data.hourly), 2)
        self.assertEqual(cached.data.hourly[0].time, self.forecast.hourly[0].time)
        self.assertEqual(cached.data.hourly[0].hour_of_day, 10)
        self.assertEqual(cached.data.current.condition, "Clear")

    def test_stale_entry_is_ignored(self):
        forecast_service.store_forecast(self.store, 48.85, 2.35, self.forecast, ttl_seconds=60)
        self.assertIsNone(forecast_service.get_cached_forecast(self.store, 48.85, 2.35, ttl_seconds=0))

    def test_missing_and_unreadable_entries(self):
        self.assertIsNone(forecast_service.get_cached_forecast(self.store, 1.0, 1.0, ttl_seconds=60))
        self.store.set(forecast_service.cache_key(1.0, 1.0), {"fetched_at": "yesterday"})
        self.assertIsNone(forecast_service.get_cached_forecast(self.store, 1.0, 1.0, ttl_seconds=60))

    def test_dict_round_trip_without_current(self):
        forecast = WeatherForecast(current=None, hourly=[_hour(9)], timezone=None)
        restored = forecast_service.forecast_from_dict(forecast_service.forecast_to_dict(forecast))
        self.assertIsNone(restored.current)
        self.assertEqual(restored.hourly[0].temperature, 27.0)


if __name__ == "__main__":
    unittest.main()
