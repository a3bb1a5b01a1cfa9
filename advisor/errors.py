"""Exception types raised by the forecast client, the catalog and the engines.

Validation problems with a trip request are not errors: they come back as a
``Not Recommended`` verdict. Everything here means the service could not
compute an answer at all.
"""


class AdvisorError(Exception):
    """Base class for district advisor failures."""


class ForecastError(AdvisorError):
    """A forecast provider call did not yield usable data."""


class UpstreamUnavailable(ForecastError):
    """The provider could not be reached, timed out, or answered with a non-2xx status."""


class MalformedResponse(ForecastError):
    """The provider answered, but the body does not match the expected hourly shape."""


class RegionCatalogError(AdvisorError):
    """The static region dataset is missing or unreadable."""


class RankingCancelled(AdvisorError):
    """A ranking computation was abandoned before its result was cached."""
