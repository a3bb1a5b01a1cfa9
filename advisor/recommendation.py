"""Advise whether travelling to a district on a given day is a good idea.

The rule compares the 2 PM forecast at the caller's position with the 2 PM
forecast at the destination: the trip is recommended only when the
destination is both cooler and has less PM2.5.
"""
from __future__ import annotations

import datetime as dt
from typing import Callable

from advisor.data_sources import ForecastDataSource
from advisor.domain import Recommendation, TripRequest
from advisor.forecast_service import fetch_location_forecasts
from advisor.regions import RegionCatalog, find_region
from advisor.sampling import SAMPLE_HOUR, first_index_at_hour, value_at
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="recommendation")

DEFAULT_UTC_OFFSET_HOURS = 6
DEFAULT_TRAVEL_WINDOW_DAYS = 7

REASON_DATE_OUT_OF_RANGE = "Travel date must be within the next {days} days."
REASON_DESTINATION_NOT_FOUND = "Destination district not found."
REASON_NO_SAMPLE_HOUR = "No 2 PM weather data available for the selected date."
REASON_INCOMPLETE_DATA = "Insufficient weather or air quality data available for 2 PM on the selected date."


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def recommended_reason(temperature_delta: float) -> str:
    return (
        f"Your destination is {temperature_delta:.1f}°C cooler and has better air quality. "
        "Enjoy your trip!"
    )


def not_recommended_reason(is_cooler: bool, is_cleaner: bool) -> str:
    return (
        f"Your destination is {'cooler' if is_cooler else 'hotter'} and has "
        f"{'better' if is_cleaner else 'worse'} air quality than your current location. "
        "It's better to stay where you are."
    )


class RecommendationEngine:
    """Stateless trip evaluator; every call fetches fresh data for exactly two points."""

    def __init__(
        self,
        catalog: RegionCatalog,
        data_source: ForecastDataSource,
        *,
        utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS,
        travel_window_days: int = DEFAULT_TRAVEL_WINDOW_DAYS,
        sample_hour: int = SAMPLE_HOUR,
        clock: Callable[[], dt.datetime] = _utc_now,
    ) -> None:
        self.catalog = catalog
        self.data_source = data_source
        self.local_tz = dt.timezone(dt.timedelta(hours=utc_offset_hours))
        self.travel_window_days = travel_window_days
        self.sample_hour = sample_hour
        self._clock = clock

    def today(self) -> dt.date:
        """Calendar date in the forecast provider's fixed offset."""
        return self._clock().astimezone(self.local_tz).date()

    def _in_travel_window(self, travel_date: dt.date) -> bool:
        today = self.today()
        return today <= travel_date <= today + dt.timedelta(days=self.travel_window_days)

    def recommend(self, trip: TripRequest) -> Recommendation:
        """
        Evaluate ``trip``.

        Validation problems come back as a Not Recommended verdict with a
        specific reason. Upstream errors (UpstreamUnavailable,
        MalformedResponse) propagate so callers can tell "don't go" apart
        from "couldn't decide".
        """
        if not self._in_travel_window(trip.travel_date):
            logger.info("Travel date outside window", extra={"travel_date": trip.travel_date.isoformat()})
            return Recommendation.not_recommended(REASON_DATE_OUT_OF_RANGE.format(days=self.travel_window_days))

        destination = find_region(self.catalog.load_regions(), trip.destination_name)
        if destination is None:
            logger.info("Unknown destination", extra={"destination": trip.destination_name})
            return Recommendation.not_recommended(REASON_DESTINATION_NOT_FOUND)

        origin_forecast, destination_forecast = fetch_location_forecasts(
            self.data_source,
            [(trip.origin_lat, trip.origin_lon), destination.coordinate],
            start_date=trip.travel_date,
            end_date=trip.travel_date,
        )

        index = first_index_at_hour(origin_forecast.temperature, self.sample_hour)
        if index is None:
            return Recommendation.not_recommended(REASON_NO_SAMPLE_HOUR)

        origin_temp = value_at(origin_forecast.temperature, index)
        destination_temp = value_at(destination_forecast.temperature, index)
        origin_pm = value_at(origin_forecast.pm2_5, index)
        destination_pm = value_at(destination_forecast.pm2_5, index)
        if any(v is None for v in (origin_temp, destination_temp, origin_pm, destination_pm)):
            return Recommendation.not_recommended(REASON_INCOMPLETE_DATA)

        is_cooler = destination_temp < origin_temp
        is_cleaner = destination_pm < origin_pm
        logger.debug(
            "Compared 2 PM forecasts",
            extra={
                "destination": destination.name,
                "origin_temp": origin_temp,
                "destination_temp": destination_temp,
                "origin_pm2_5": origin_pm,
                "destination_pm2_5": destination_pm,
            },
        )

        if is_cooler and is_cleaner:
            return Recommendation.recommended(recommended_reason(origin_temp - destination_temp))
        return Recommendation.not_recommended(not_recommended_reason(is_cooler, is_cleaner))
