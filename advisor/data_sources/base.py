"""Interfaces and helpers for forecast data sources."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

from advisor.data_sources.open_meteo_client import Coordinate, HourlySeries, Metric


class ForecastDataSource(Protocol):
    """Interface for anything that can provide batched hourly series."""

    def fetch_series(
        self,
        coordinates: Sequence[Coordinate],
        metric: Metric,
        *,
        forecast_days: Optional[int] = None,
        start_date: Optional[dt.date] = None,
        end_date: Optional[dt.date] = None,
    ) -> List[HourlySeries]:
        """Return one series per coordinate, in the same order as ``coordinates``."""
        ...


@dataclass
class CallableForecastDataSource(ForecastDataSource):
    """Wrap one callable per metric so backends (or test fakes) can be swapped in."""

    temperature_hours: Callable[..., List[HourlySeries]]
    pm2_5_hours: Callable[..., List[HourlySeries]]

    def fetch_series(self, coordinates, metric, **kwargs) -> List[HourlySeries]:
        """Delegate to the callable configured for ``metric``."""
        if metric is Metric.TEMPERATURE:
            return self.temperature_hours(coordinates, **kwargs)
        if metric is Metric.PM2_5:
            return self.pm2_5_hours(coordinates, **kwargs)
        raise ValueError(f"Unsupported metric '{metric}'")
