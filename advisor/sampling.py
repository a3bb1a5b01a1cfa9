"""Reduce hourly series to the fixed daytime samples used for comparisons."""
from __future__ import annotations

from typing import List, Optional, Sequence

from advisor.data_sources.open_meteo_client import HourlySeries

SAMPLE_HOUR = 14
# Stands in for "no data" so a region without samples sorts after every real reading.
MISSING_METRIC_SENTINEL = 999.0


def extract_at_hour(series: HourlySeries, hour: int = SAMPLE_HOUR) -> List[float]:
    """Return the present values whose local timestamp falls on ``hour``, in series order."""
    return [
        value
        for time, value in zip(series.times, series.values)
        if time.hour == hour and value is not None
    ]


def first_index_at_hour(series: HourlySeries, hour: int = SAMPLE_HOUR) -> Optional[int]:
    """Index of the first timestamp on ``hour``, regardless of whether its value is present."""
    for i, time in enumerate(series.times):
        if time.hour == hour:
            return i
    return None


def value_at(series: HourlySeries, index: int) -> Optional[float]:
    """Value at ``index``, or None when the series is too short or the value is missing."""
    if index < len(series.values):
        return series.values[index]
    return None


def mean_or_sentinel(values: Sequence[float]) -> float:
    """Arithmetic mean rounded to one decimal place, or the sentinel for no samples."""
    if not values:
        return MISSING_METRIC_SENTINEL
    return round(sum(values) / len(values), 1)
