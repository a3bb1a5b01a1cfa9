import datetime as dt
import threading
import unittest

from advisor.data_sources import CallableForecastDataSource, build_data_source
from advisor.data_sources import open_meteo_client
from advisor.data_sources.open_meteo_client import HourlySeries
from advisor.config import Settings
from advisor.errors import MalformedResponse, RankingCancelled, UpstreamUnavailable
from advisor.ranking import RankingEngine, rank_regions
from advisor.domain import RegionMetrics
from advisor.regions import Region, StaticRegionCatalog
from advisor.result_cache import InMemoryResultCache

DHAKA = dt.timezone(dt.timedelta(hours=6))


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class DummyResp:
    def __init__(self, payload):
        self._payload = payload
        self.status_code = 200
        self.url = ""

    def raise_for_status(self):
        pass

    def json(self):
        return self._payload


class UrlDispatchSession:
    """Answers weather and air-quality requests by URL; the two calls may arrive in any order."""

    def __init__(self, weather_payload, air_payload):
        self.weather_payload = weather_payload
        self.air_payload = air_payload
        self.calls = []
        self._lock = threading.Lock()

    def get(self, url, params=None, timeout=None):
        with self._lock:
            self.calls.append((url, params))
        if "air-quality" in url:
            return DummyResp(self.air_payload)
        return DummyResp(self.weather_payload)


def _series(values, hour=14, day=5):
    times = [dt.datetime(2026, 1, day + i, hour, tzinfo=DHAKA) for i in range(len(values))]
    return HourlySeries(times=times, values=list(values))


class FakeSource:
    """Serves preset per-region series and counts fetches."""

    def __init__(self, temperatures, pm2_5, error=None):
        self.temperatures = temperatures
        self.pm2_5 = pm2_5
        self.error = error
        self.calls = []
        self.source = CallableForecastDataSource(self._temperature, self._pm2_5)

    def _temperature(self, coordinates, **kwargs):
        self.calls.append(("temperature", list(coordinates), kwargs))
        if self.error:
            raise self.error
        return [_series(v) for v in self.temperatures]

    def _pm2_5(self, coordinates, **kwargs):
        self.calls.append(("pm2_5", list(coordinates), kwargs))
        if self.error:
            raise self.error
        return [_series(v) for v in self.pm2_5]


def _regions(*names):
    return [Region(name=n, latitude=20.0 + i, longitude=90.0 + i) for i, n in enumerate(names)]


class TestRankingEngine(unittest.TestCase):
    def setUp(self):
        self._orig_session = open_meteo_client.session

    def tearDown(self):
        open_meteo_client.session = self._orig_session

    def test_three_region_scenario_over_http(self):
        weather = [
            {"hourly": {"time": ["2026-01-05T14:00"], "temperature_2m": [30.0]}},
            {"hourly": {"time": ["2026-01-05T14:00"], "temperature_2m": [20.0]}},
            {"hourly": {"time": ["2026-01-05T14:00"], "temperature_2m": [25.0]}},
        ]
        air = [
            {"hourly": {"time": ["2026-01-05T14:00"], "pm2_5": [80.0]}},
            {"hourly": {"time": ["2026-01-05T14:00"], "pm2_5": [20.0]}},
            {"hourly": {"time": ["2026-01-05T14:00"], "pm2_5": [50.0]}},
        ]
        session = UrlDispatchSession(weather, air)
        open_meteo_client.session = session

        engine = RankingEngine(
            StaticRegionCatalog(_regions("A", "B", "C")),
            build_data_source(Settings()),
            InMemoryResultCache(),
        )
        result, from_cache = engine.compute_ranking()

        self.assertFalse(from_cache)
        self.assertEqual(
            [(m.name, m.avg_temperature, m.avg_pm2_5) for m in result],
            [("B", 20.0, 20.0), ("C", 25.0, 50.0), ("A", 30.0, 80.0)],
        )
        self.assertEqual(len(session.calls), 2)
        for _url, params in session.calls:
            self.assertEqual(params["latitude"], "20.0,21.0,22.0")
            self.assertEqual(params["forecast_days"], 7)

    def test_second_call_within_ttl_is_served_from_cache(self):
        fake = FakeSource([[30.0]], [[80.0]])
        clock = FakeClock()
        engine = RankingEngine(StaticRegionCatalog(_regions("Dhaka")), fake.source, InMemoryResultCache(clock=clock))

        first, first_cached = engine.compute_ranking()
        clock.now += 60
        second, second_cached = engine.compute_ranking()

        self.assertFalse(first_cached)
        self.assertTrue(second_cached)
        self.assertEqual(first, second)
        self.assertEqual(len(fake.calls), 2)

    def test_refetches_after_ttl(self):
        fake = FakeSource([[30.0]], [[80.0]])
        clock = FakeClock()
        engine = RankingEngine(StaticRegionCatalog(_regions("Dhaka")), fake.source, InMemoryResultCache(clock=clock))

        engine.compute_ranking()
        clock.now += 30 * 60
        _result, from_cache = engine.compute_ranking()

        self.assertFalse(from_cache)
        self.assertEqual(len(fake.calls), 4)

    def test_averages_multiple_days_and_uses_sentinel(self):
        fake = FakeSource(
            temperatures=[[None, None], [24.0, 25.0], [30.0, 31.0]],
            pm2_5=[[10.0, 12.0], [None, None], [40.0, 41.0]],
        )
        engine = RankingEngine(StaticRegionCatalog(_regions("Empty", "Cool", "Warm")), fake.source, InMemoryResultCache())

        result, _ = engine.compute_ranking()

        self.assertEqual([m.name for m in result], ["Cool", "Warm", "Empty"])
        self.assertEqual(result[0].avg_temperature, 24.5)
        self.assertEqual(result[0].avg_pm2_5, 999.0)
        self.assertEqual(result[2].avg_temperature, 999.0)
        self.assertEqual(result[2].avg_pm2_5, 11.0)

    def test_truncates_to_top_ten_and_orders(self):
        names = [f"D{i:02d}" for i in range(14)]
        temperatures = [[float(30 - (i % 5))] for i in range(14)]
        pm2_5 = [[float(100 - i)] for i in range(14)]
        fake = FakeSource(temperatures, pm2_5)
        engine = RankingEngine(StaticRegionCatalog(_regions(*names)), fake.source, InMemoryResultCache())

        result, _ = engine.compute_ranking()

        self.assertEqual(len(result), 10)
        for earlier, later in zip(result, result[1:]):
            self.assertLessEqual(earlier.avg_temperature, later.avg_temperature)
            if earlier.avg_temperature == later.avg_temperature:
                self.assertLessEqual(earlier.avg_pm2_5, later.avg_pm2_5)

    def test_ties_keep_catalog_order(self):
        rows = [
            RegionMetrics(name="First", avg_temperature=20.0, avg_pm2_5=10.0),
            RegionMetrics(name="Second", avg_temperature=20.0, avg_pm2_5=10.0),
        ]
        self.assertEqual([m.name for m in rank_regions(rows)], ["First", "Second"])

    def test_upstream_failure_propagates_and_keeps_previous_entry(self):
        clock = FakeClock()
        cache = InMemoryResultCache(clock=clock)
        good = FakeSource([[30.0]], [[80.0]])
        engine = RankingEngine(StaticRegionCatalog(_regions("Dhaka")), good.source, cache)
        engine.compute_ranking()
        version = cache.version

        clock.now += 31 * 60
        engine.data_source = FakeSource([[30.0]], [[80.0]], error=UpstreamUnavailable("down")).source
        with self.assertRaises(UpstreamUnavailable):
            engine.compute_ranking()

        self.assertEqual(cache.version, version)
        self.assertIsNone(cache.get())

    def test_count_mismatch_is_not_cached(self):
        fake = FakeSource([[30.0]], [[80.0]])
        cache = InMemoryResultCache()
        engine = RankingEngine(StaticRegionCatalog(_regions("Dhaka", "Sylhet")), fake.source, cache)

        with self.assertRaises(MalformedResponse):
            engine.compute_ranking()
        self.assertEqual(cache.version, 0)

    def test_invalid_ttl_is_rejected_before_any_fetch(self):
        fake = FakeSource([[30.0]], [[80.0]])
        catalog = StaticRegionCatalog(_regions("Dhaka"))

        for kwargs in ({"ttl_seconds": 0}, {"ttl_seconds": -1}, {"top_n": 0}, {"forecast_days": 0}):
            with self.subTest(**kwargs):
                with self.assertRaises(ValueError):
                    RankingEngine(catalog, fake.source, InMemoryResultCache(), **kwargs)
        self.assertEqual(fake.calls, [])

    def test_concurrent_misses_share_one_fetch(self):
        entered = threading.Event()
        release = threading.Event()
        fake = FakeSource([[30.0]], [[80.0]])
        original = fake._temperature

        def slow_temperature(coordinates, **kwargs):
            entered.set()
            release.wait(5)
            return original(coordinates, **kwargs)

        fake.source.temperature_hours = slow_temperature
        engine = RankingEngine(StaticRegionCatalog(_regions("Dhaka")), fake.source, InMemoryResultCache())
        results = []

        def call():
            results.append(engine.compute_ranking())

        first = threading.Thread(target=call)
        first.start()
        self.assertTrue(entered.wait(5))
        second = threading.Thread(target=call)
        second.start()
        release.set()
        first.join(5)
        second.join(5)

        self.assertEqual(len(results), 2)
        self.assertEqual([c[0] for c in fake.calls].count("temperature"), 1)
        self.assertEqual(results[0][0], results[1][0])
        self.assertEqual(sorted(from_cache for _, from_cache in results), [False, True])

    def test_cancelled_refresh_does_not_write_cache(self):
        cancel = threading.Event()
        fake = FakeSource([[30.0]], [[80.0]])
        original = fake._temperature

        def cancel_during_fetch(coordinates, **kwargs):
            cancel.set()
            return original(coordinates, **kwargs)

        fake.source.temperature_hours = cancel_during_fetch
        cache = InMemoryResultCache()
        engine = RankingEngine(StaticRegionCatalog(_regions("Dhaka")), fake.source, cache)

        with self.assertRaises(RankingCancelled):
            engine.compute_ranking(cancel_event=cancel)
        self.assertIsNone(cache.get())
        self.assertEqual(cache.version, 0)


if __name__ == "__main__":
    unittest.main()
