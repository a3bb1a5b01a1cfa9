"""Rank districts by 2 PM temperature, then PM2.5, over the forecast week."""
from __future__ import annotations

import threading
from typing import List, Optional, Tuple

from advisor.data_sources import ForecastDataSource
from advisor.domain import RankedResult, RegionMetrics
from advisor.errors import RankingCancelled
from advisor.forecast_service import LocationForecast, fetch_location_forecasts
from advisor.regions import Region, RegionCatalog
from advisor.result_cache import ResultCache
from advisor.sampling import SAMPLE_HOUR, extract_at_hour, mean_or_sentinel
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="ranking")

DEFAULT_TOP_N = 10
DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_FORECAST_DAYS = 7


def summarize_region(region: Region, forecast: LocationForecast, hour: int = SAMPLE_HOUR) -> RegionMetrics:
    """Average a region's samples at ``hour``; a metric with no samples gets the sentinel."""
    return RegionMetrics(
        name=region.name,
        avg_temperature=mean_or_sentinel(extract_at_hour(forecast.temperature, hour)),
        avg_pm2_5=mean_or_sentinel(extract_at_hour(forecast.pm2_5, hour)),
    )


def rank_regions(metrics: List[RegionMetrics], top_n: int = DEFAULT_TOP_N) -> RankedResult:
    """Sort coolest-then-cleanest (stable for full ties) and keep the first ``top_n``."""
    return tuple(sorted(metrics, key=RegionMetrics.sort_key)[:top_n])


class RankingEngine:
    """Computes the top-N district ranking and keeps it in a TTL cache."""

    def __init__(
        self,
        catalog: RegionCatalog,
        data_source: ForecastDataSource,
        cache: ResultCache,
        *,
        top_n: int = DEFAULT_TOP_N,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        forecast_days: int = DEFAULT_FORECAST_DAYS,
        sample_hour: int = SAMPLE_HOUR,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if top_n < 1 or forecast_days < 1:
            raise ValueError("top_n and forecast_days must be at least 1")
        self.catalog = catalog
        self.data_source = data_source
        self.cache = cache
        self.top_n = top_n
        self.ttl_seconds = ttl_seconds
        self.forecast_days = forecast_days
        self.sample_hour = sample_hour
        # Serializes recomputation so concurrent misses share one upstream round trip.
        self._refresh_lock = threading.Lock()

    def compute_ranking(self, cancel_event: Optional[threading.Event] = None) -> Tuple[RankedResult, bool]:
        """
        Return ``(ranking, served_from_cache)``.

        A live cache entry is returned without any network activity. Otherwise
        both metrics are fetched for every region in one batched request each,
        reduced, ranked and cached. Upstream errors propagate and leave the
        cache untouched; so does cancellation via ``cancel_event``.
        """
        cached = self.cache.get()
        if cached is not None:
            logger.debug("Serving ranking from cache")
            return cached, True

        with self._refresh_lock:
            # Another caller may have refreshed while we waited.
            cached = self.cache.get()
            if cached is not None:
                return cached, True
            result = self._recompute(cancel_event)
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Ranking cancelled; not caching result")
                raise RankingCancelled("Ranking computation was cancelled")
            self.cache.put(result, self.ttl_seconds)

        logger.info("Ranking recomputed", extra={"returned": len(result), "ttl": self.ttl_seconds})
        return result, False

    def _recompute(self, cancel_event: Optional[threading.Event]) -> RankedResult:
        regions = self.catalog.load_regions()
        if cancel_event is not None and cancel_event.is_set():
            raise RankingCancelled("Ranking computation was cancelled")

        forecasts = fetch_location_forecasts(
            self.data_source,
            [region.coordinate for region in regions],
            forecast_days=self.forecast_days,
        )
        metrics = [
            summarize_region(region, forecast, self.sample_hour)
            for region, forecast in zip(regions, forecasts)
        ]
        return rank_regions(metrics, self.top_n)
