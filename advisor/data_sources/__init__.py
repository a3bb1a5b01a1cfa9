"""Data source factories for plugging forecast backends into the engines."""

from .base import CallableForecastDataSource, ForecastDataSource
from .factory import build_data_source
from .open_meteo_client import (
    HourlySeries,
    Metric,
    fetch_pm2_5_hours,
    fetch_temperature_hours,
)

__all__ = [
    "build_data_source",
    "ForecastDataSource",
    "CallableForecastDataSource",
    "HourlySeries",
    "Metric",
    "fetch_pm2_5_hours",
    "fetch_temperature_hours",
]
