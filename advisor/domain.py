"""Domain vocabulary and strict schemas shared by the engines and the HTTP layer.

Field names are Pythonic; aliases carry the camelCase names used on the wire
(``avgTemperature``, ``currentLatitude``...). No decision logic lives here.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling and alias-or-name population."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class Verdict(str, Enum):
    """Outcome of a trip evaluation."""
    RECOMMENDED = "Recommended"
    NOT_RECOMMENDED = "Not Recommended"


class RegionMetrics(_StrictBaseModel):
    """A region reduced to its two comparable 2 PM averages."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    name: str
    avg_temperature: float = Field(alias="avgTemperature")
    avg_pm2_5: float = Field(alias="avgPm25")

    def sort_key(self) -> Tuple[float, float]:
        """Cooler first, cleaner air breaks ties."""
        return self.avg_temperature, self.avg_pm2_5


# Ordered best-first; immutable so a cached snapshot can be shared between requests.
RankedResult = Tuple[RegionMetrics, ...]


class TripRequest(_StrictBaseModel):
    """A planned trip from the caller's position to a named district."""

    origin_lat: float = Field(alias="currentLatitude", ge=-90.0, le=90.0)
    origin_lon: float = Field(alias="currentLongitude", ge=-180.0, le=180.0)
    destination_name: str = Field(alias="destinationDistrict", min_length=1)
    travel_date: date = Field(alias="travelDate")


class Recommendation(_StrictBaseModel):
    """Verdict plus the human-readable reason behind it."""

    verdict: Verdict = Field(alias="recommendation")
    reason: str

    @classmethod
    def recommended(cls, reason: str) -> "Recommendation":
        return cls(verdict=Verdict.RECOMMENDED, reason=reason)

    @classmethod
    def not_recommended(cls, reason: str) -> "Recommendation":
        return cls(verdict=Verdict.NOT_RECOMMENDED, reason=reason)
