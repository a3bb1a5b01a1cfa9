"""Factory helpers for wiring the forecast data source at startup."""

from __future__ import annotations

from functools import partial

from advisor import config
from advisor.data_sources.base import CallableForecastDataSource, ForecastDataSource
from advisor.data_sources.open_meteo_client import fetch_pm2_5_hours, fetch_temperature_hours
from utils.logging_utils import get_tagged_logger, mask_url_secrets

logger = get_tagged_logger(__name__, tag="data_sources/factory")


def build_data_source(settings: config.Settings | None = None) -> ForecastDataSource:
    """Bind the Open-Meteo fetchers to the configured endpoints, timezone and timeout."""
    settings = settings or config.settings

    common = {
        "timezone": settings.forecast_timezone,
        "timeout": settings.http_timeout_seconds,
        "api_key": settings.open_meteo_api_key,
    }
    logger.info(
        "Using Open-Meteo data source",
        extra={
            "weather_url": mask_url_secrets(settings.weather_url),
            "air_quality_url": mask_url_secrets(settings.air_quality_url),
            "timezone": settings.forecast_timezone,
        },
    )
    return CallableForecastDataSource(
        temperature_hours=partial(fetch_temperature_hours, base_url=settings.weather_url, **common),
        pm2_5_hours=partial(fetch_pm2_5_hours, base_url=settings.air_quality_url, **common),
    )
