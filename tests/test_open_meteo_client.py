import math
import unittest

import requests

from outdoor_planner.data_sources import open_meteo_client
from outdoor_planner.models import ForecastUnavailableError


class DummyResp:
    def __init__(self, payload, status_error=None):
        self._payload = payload
        self._status_error = status_error

    def raise_for_status(self):
        if self._status_error:
            raise self._status_error

    def json(self):
        return self._payload


def _make_current_payload():
    return {
        "timezone": "Europe/Berlin",
        "current": {
            "time": "2024-06-01T12:00",
            "temperature_2m": 18.0,
            "relative_humidity_2m": 50.0,
            "wind_speed_10m": 2.5,
            "weather_code": 61,
        },
        "current_units": {
            "time": "iso8601",
            "temperature_2m": "°C",
            "relative_humidity_2m": "%",
            "wind_speed_10m": "m/s",
        },
    }


def _make_hourly_payload():
    return {
        "timezone": "Europe/Berlin",
        "hourly": {
            "time": ["2024-06-01T12:00", "2024-06-01T13:00", "2024-06-01T14:00"],
            "temperature_2m": [18.0, 19.0, None],
            "relative_humidity_2m": [50.0, 55.0, 60.0],
            "precipitation_probability": [20.0, 0.0, 100.0],
            "wind_speed_10m": [2.5, 3.0, 3.5],
            "weather_code": [0, 3, 95],
        },
        "hourly_units": {
            "temperature_2m": "°C",
            "relative_humidity_2m": "%",
            "precipitation_probability": "%",
            "wind_speed_10m": "km/h",
        },
    }


class TestOpenMeteoClient(unittest.TestCase):
    def setUp(self):
        self._orig_session = open_meteo_client.session

    def tearDown(self):
        open_meteo_client.session = self._orig_session

    def _use_payload(self, payload, calls=None, status_error=None):
        def fake_get(url, params=None, timeout=None):
            if calls is not None:
                calls.append(params)
            return DummyResp(payload, status_error=status_error)

        open_meteo_client.session = type("S", (), {"get": staticmethod(fake_get)})()

    def test_fetch_current_parses_payload(self):
        calls = []
        self._use_payload(_make_current_payload(), calls)

        current = open_meteo_client.fetch_current(52.5, 13.4)

        self.assertEqual(current.temperature, 18.0)
        self.assertEqual(current.humidity, 50.0)
        self.assertEqual(current.condition, "Rain")
        self.assertEqual(current.time.tzinfo.key, "Europe/Berlin")
        self.assertEqual(current.time.hour, 12)
        self.assertEqual(calls[0]["wind_speed_unit"], "ms")
        self.assertEqual(calls[0]["temperature_unit"], "celsius")

    def test_fetch_hours_normalizes_probability(self):
        calls = []
        self._use_payload(_make_hourly_payload(), calls)

        hours = open_meteo_client.fetch_hours(52.5, 13.4, hours=3)

        self.assertEqual(len(hours), 3)
        self.assertEqual(calls[0]["forecast_hours"], 3)
        self.assertEqual([h.hour_of_day for h in hours], [12, 13, 14])
        self.assertAlmostEqual(hours[0].precipitation, 0.2)
        self.assertEqual(hours[2].precipitation, 1.0)
        self.assertEqual([h.condition for h in hours], ["Clear", "Clouds", "Thunderstorm"])
        self.assertTrue(math.isnan(hours[2].temperature))
        self.assertEqual(hours[0].timestamp, int(hours[0].time.timestamp()))

    def test_fetch_hours_respects_limit(self):
        self._use_payload(_make_hourly_payload())
        self.assertEqual(len(open_meteo_client.fetch_hours(52.5, 13.4, hours=2)), 2)

    def test_unexpected_units_only_warn(self):
        self._use_payload(_make_hourly_payload())
        with self.assertLogs("outdoor_planner.data_sources.open_meteo_client", level="WARNING"):
            open_meteo_client.fetch_hours(52.5, 13.4)

    def test_malformed_payload_raises(self):
        self._use_payload({"timezone": "UTC", "hourly": {"temperature_2m": [1.0]}})
        with self.assertRaises(ForecastUnavailableError):
            open_meteo_client.fetch_hours(52.5, 13.4)

        self._use_payload({"timezone": "UTC"})
        with self.assertRaises(ForecastUnavailableError):
            open_meteo_client.fetch_current(52.5, 13.4)

    def test_http_error_raises(self):
        self._use_payload({}, status_error=requests.HTTPError("500"))
        with self.assertRaises(ForecastUnavailableError):
            open_meteo_client.fetch_current(52.5, 13.4)


class TestConditionCodes(unittest.TestCase):
    def test_known_and_unknown_codes(self):
        self.assertEqual(open_meteo_client._condition(0), "Clear")
        self.assertEqual(open_meteo_client._condition(53), "Drizzle")
        self.assertEqual(open_meteo_client._condition(12345), "Unknown")
        self.assertEqual(open_meteo_client._condition(None), "Unknown")
        self.assertEqual(open_meteo_client._condition("x"), "Unknown")


if __name__ == "__main__":
    unittest.main()
