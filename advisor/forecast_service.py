"""Fetch temperature and PM2.5 series side by side for a batch of locations."""
from __future__ import annotations

import datetime as dt
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

from advisor.data_sources import ForecastDataSource, HourlySeries, Metric
from advisor.data_sources.open_meteo_client import Coordinate
from advisor.errors import MalformedResponse
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="forecast_service")


@dataclass
class LocationForecast:
    """Both hourly series for one requested coordinate."""
    temperature: HourlySeries
    pm2_5: HourlySeries


def fetch_location_forecasts(
    data_source: ForecastDataSource,
    coordinates: Sequence[Coordinate],
    *,
    forecast_days: Optional[int] = None,
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
) -> List[LocationForecast]:
    """
    Issue the temperature and air-quality requests concurrently and zip the results.

    Each request carries every coordinate; the returned list is aligned with
    ``coordinates``. Errors from either request propagate unchanged.
    """
    span = {"forecast_days": forecast_days, "start_date": start_date, "end_date": end_date}
    span = {k: v for k, v in span.items() if v is not None}

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="forecast-fetch") as pool:
        temperature_future = pool.submit(data_source.fetch_series, coordinates, Metric.TEMPERATURE, **span)
        pm2_5_future = pool.submit(data_source.fetch_series, coordinates, Metric.PM2_5, **span)
        temperature = temperature_future.result()
        pm2_5 = pm2_5_future.result()

    if len(temperature) != len(coordinates) or len(pm2_5) != len(coordinates):
        raise MalformedResponse(
            f"Expected {len(coordinates)} locations, got {len(temperature)} temperature "
            f"and {len(pm2_5)} PM2.5 series"
        )

    logger.debug("Fetched paired forecasts", extra={"locations": len(coordinates), **span})
    return [LocationForecast(temperature=t, pm2_5=p) for t, p in zip(temperature, pm2_5)]
