"""Helpers for fetching hourly temperature and PM2.5 series from the Open-Meteo APIs.

Both endpoints accept many coordinates per request (comma-joined latitude and
longitude lists) and answer with one JSON object per coordinate, in request
order. A single coordinate comes back as a bare object instead of a list.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

import requests

from advisor.errors import MalformedResponse, UpstreamUnavailable
from utils.logging_utils import get_tagged_logger, mask_url_secrets
logger = get_tagged_logger(__name__, tag='open_meteo_client')

session = requests.Session()

OPEN_METEO_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_AIR_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"
DEFAULT_TIMEZONE = "Asia/Dhaka"
DEFAULT_TIMEOUT_SECONDS = 10.0

EXPECTED_UNITS = {
    "temperature_2m": "°C",
    "pm2_5": "μg/m³",
}

# Acceptable alternative spellings that should not trigger warnings.
ALLOWED_UNIT_SYNONYMS = {
    "temperature_2m": {"°C"},
    "pm2_5": {"μg/m³", "µg/m³", "ug/m3"},
}

Coordinate = Tuple[float, float]


class Metric(str, Enum):
    """Hourly variables the advisor consumes, named as Open-Meteo names them."""
    TEMPERATURE = "temperature_2m"
    PM2_5 = "pm2_5"


@dataclass
class HourlySeries:
    """One location's hourly values for a single variable, index-aligned with ``times``."""
    times: List[dt.datetime]  # timezone-aware, provider-local
    values: List[Optional[float]]


def format_coordinate(value: float) -> str:
    """Render a coordinate in fixed-point form (7 decimals at most) regardless of process locale."""
    text = format(float(value), ".7f").rstrip("0")
    return text + "0" if text.endswith(".") else text


def _iso_to_dt_with_tz(s: str, tz_name: str) -> dt.datetime:
    """Interpret an Open-Meteo local time string as being in tz_name."""
    parsed = dt.datetime.fromisoformat(s)
    if parsed.tzinfo is not None:
        return parsed
    return parsed.replace(tzinfo=ZoneInfo(tz_name))


def _warn_on_unexpected_unit(units: Any, variable: str, *, context: str) -> None:
    """Log a warning if Open-Meteo reports a unit we did not expect."""
    if not isinstance(units, dict):
        return
    actual = units.get(variable)
    if not actual:
        return
    expected = EXPECTED_UNITS.get(variable)
    if actual != expected and actual not in ALLOWED_UNIT_SYNONYMS.get(variable, set()):
        logger.warning(
            "Unexpected Open-Meteo unit",
            extra={"context": context, "field": variable, "unit": actual, "expected": expected},
        )


def _date_params(
    forecast_days: Optional[int],
    start_date: Optional[dt.date],
    end_date: Optional[dt.date],
) -> dict:
    """Translate the requested span into either forecast_days or an explicit date pair."""
    if forecast_days is not None:
        if start_date is not None or end_date is not None:
            raise ValueError("Pass either forecast_days or start_date/end_date, not both")
        if forecast_days < 1:
            raise ValueError("forecast_days must be positive")
        return {"forecast_days": forecast_days}
    if start_date is None or end_date is None:
        raise ValueError("start_date and end_date are required when forecast_days is not given")
    if end_date < start_date:
        raise ValueError("end_date must not be before start_date")
    return {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}


def build_params(
    coordinates: Sequence[Coordinate],
    variable: str,
    *,
    timezone: str = DEFAULT_TIMEZONE,
    forecast_days: Optional[int] = None,
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    api_key: Optional[str] = None,
) -> dict:
    """Build the query string for one batched hourly request."""
    if not coordinates:
        raise ValueError("At least one coordinate is required")
    params = {
        "latitude": ",".join(format_coordinate(lat) for lat, _ in coordinates),
        "longitude": ",".join(format_coordinate(lon) for _, lon in coordinates),
        "hourly": variable,
        "timezone": timezone,
    }
    params.update(_date_params(forecast_days, start_date, end_date))
    if api_key:
        params["apikey"] = api_key
    return params


def _error_reason(resp: requests.Response) -> str:
    """Pull Open-Meteo's ``reason`` field out of an error body, if there is one."""
    try:
        body = resp.json()
    except ValueError:
        text = getattr(resp, "text", "") or ""
        return text[:200]
    if isinstance(body, dict) and body.get("reason"):
        return str(body["reason"])
    return ""


def _get_json(url: str, params: dict, *, timeout: float, context: str) -> Any:
    """Issue the GET and decode JSON, mapping failures onto the advisor's error types."""
    try:
        resp = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Open-Meteo request failed", extra={"context": context, "error": str(exc)})
        raise UpstreamUnavailable(f"{context}: request to Open-Meteo failed: {exc}") from exc

    logger.debug("Open-Meteo response", extra={"context": context, "url": mask_url_secrets(getattr(resp, "url", url) or url)})
    try:
        resp.raise_for_status()
    except requests.HTTPError as exc:
        reason = _error_reason(resp)
        logger.warning(
            "Open-Meteo returned an error status",
            extra={"context": context, "status": getattr(resp, "status_code", None), "reason": reason},
        )
        raise UpstreamUnavailable(f"{context}: Open-Meteo returned an error status: {reason or exc}") from exc

    try:
        return resp.json()
    except ValueError as exc:
        raise MalformedResponse(f"{context}: response body is not valid JSON") from exc


def _coerce_value(value: Any, *, context: str) -> Optional[float]:
    """Keep missing values as None; reject anything that is not a number."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResponse(f"{context}: non-numeric hourly value {value!r}")
    return float(value)


def _parse_location(location: Any, variable: str, tz_name: str, *, context: str) -> HourlySeries:
    """Convert one location object into an HourlySeries."""
    if not isinstance(location, dict):
        raise MalformedResponse(f"{context}: location entry is not an object")
    hourly = location.get("hourly")
    if not isinstance(hourly, dict):
        raise MalformedResponse(f"{context}: location has no 'hourly' block")
    times = hourly.get("time")
    values = hourly.get(variable)
    if not isinstance(times, list) or not isinstance(values, list):
        raise MalformedResponse(f"{context}: hourly block lacks 'time' or '{variable}' arrays")
    if len(times) != len(values):
        raise MalformedResponse(
            f"{context}: 'time' has {len(times)} entries but '{variable}' has {len(values)}"
        )

    _warn_on_unexpected_unit(location.get("hourly_units"), variable, context=context)

    try:
        parsed_times = [_iso_to_dt_with_tz(t, tz_name) for t in times]
    except (TypeError, ValueError) as exc:
        raise MalformedResponse(f"{context}: unparseable hourly timestamp") from exc

    return HourlySeries(
        times=parsed_times,
        values=[_coerce_value(v, context=context) for v in values],
    )


def parse_hourly_locations(
    payload: Any,
    variable: str,
    *,
    expected_count: int,
    timezone: str = DEFAULT_TIMEZONE,
    context: str = "hourly",
) -> List[HourlySeries]:
    """Parse a (possibly single-object) Open-Meteo body into per-location series."""
    locations = [payload] if isinstance(payload, dict) else payload
    if not isinstance(locations, list):
        raise MalformedResponse(f"{context}: expected a list of locations")
    if len(locations) != expected_count:
        raise MalformedResponse(
            f"{context}: requested {expected_count} locations but received {len(locations)}"
        )
    return [_parse_location(loc, variable, timezone, context=context) for loc in locations]


def _fetch_hourly(
    base_url: str,
    metric: Metric,
    coordinates: Sequence[Coordinate],
    *,
    timezone: str,
    forecast_days: Optional[int],
    start_date: Optional[dt.date],
    end_date: Optional[dt.date],
    timeout: float,
    api_key: Optional[str],
    context: str,
) -> List[HourlySeries]:
    params = build_params(
        coordinates,
        metric.value,
        timezone=timezone,
        forecast_days=forecast_days,
        start_date=start_date,
        end_date=end_date,
        api_key=api_key,
    )
    logger.info("Fetching Open-Meteo hourly series",
                extra={"context": context, "locations": len(coordinates), "variable": metric.value})
    data = _get_json(base_url, params, timeout=timeout, context=context)
    return parse_hourly_locations(
        data,
        metric.value,
        expected_count=len(coordinates),
        timezone=timezone,
        context=context,
    )


def fetch_temperature_hours(
    coordinates: Sequence[Coordinate],
    *,
    forecast_days: Optional[int] = None,
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    timezone: str = DEFAULT_TIMEZONE,
    base_url: str = OPEN_METEO_WEATHER_URL,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    api_key: Optional[str] = None,
) -> List[HourlySeries]:
    """Fetch hourly 2 m temperature for every coordinate in one request."""
    return _fetch_hourly(
        base_url,
        Metric.TEMPERATURE,
        coordinates,
        timezone=timezone,
        forecast_days=forecast_days,
        start_date=start_date,
        end_date=end_date,
        timeout=timeout,
        api_key=api_key,
        context="weather_hourly",
    )


def fetch_pm2_5_hours(
    coordinates: Sequence[Coordinate],
    *,
    forecast_days: Optional[int] = None,
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    timezone: str = DEFAULT_TIMEZONE,
    base_url: str = OPEN_METEO_AIR_URL,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    api_key: Optional[str] = None,
) -> List[HourlySeries]:
    """Fetch hourly PM2.5 for every coordinate in one request."""
    return _fetch_hourly(
        base_url,
        Metric.PM2_5,
        coordinates,
        timezone=timezone,
        forecast_days=forecast_days,
        start_date=start_date,
        end_date=end_date,
        timeout=timeout,
        api_key=api_key,
        context="air_hourly",
    )
