"""HTTP API for the district ranking and trip recommendation endpoints."""

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from pydantic import BaseModel

from .config import settings
from .data_sources import build_data_source
from .domain import Recommendation, RegionMetrics, TripRequest
from .errors import ForecastError
from .ranking import RankingEngine
from .recommendation import RecommendationEngine
from .regions import JsonRegionCatalog
from .result_cache import InMemoryResultCache
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="advisor/api")

UPSTREAM_FAILURE_DETAIL = "Forecast data is temporarily unavailable. Please try again later."


def require_api_key(x_api_key: str | None = Header(default=None)):
    """
    Validate the X-API-Key header against the static api_key setting.
    """
    # If no key is configured, allow requests (dev/default mode).
    if not settings.api_key:
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])

# A missing or malformed district dataset aborts startup here.
CATALOG = JsonRegionCatalog(settings.regions_path)
DATA_SOURCE = build_data_source(settings)
RANKING_CACHE = InMemoryResultCache()
RANKING_ENGINE = RankingEngine(
    CATALOG,
    DATA_SOURCE,
    RANKING_CACHE,
    top_n=settings.top_n,
    ttl_seconds=settings.ranking_ttl_seconds,
    forecast_days=settings.forecast_days,
    sample_hour=settings.sample_hour,
)
RECOMMENDATION_ENGINE = RecommendationEngine(
    CATALOG,
    DATA_SOURCE,
    utc_offset_hours=settings.local_utc_offset_hours,
    travel_window_days=settings.travel_window_days,
    sample_hour=settings.sample_hour,
)


class HealthResponse(BaseModel):
    """Liveness payload."""
    status: str
    regions: int


def _upstream_failure(exc: ForecastError) -> HTTPException:
    """Map a provider failure onto a generic 502 without guessing a verdict."""
    logger.warning("Forecast provider failure", extra={"error": str(exc), "error_type": type(exc).__name__})
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UPSTREAM_FAILURE_DETAIL)


@router.get("/districts/top10", response_model=list[RegionMetrics])
def get_top_districts(response: Response):
    """Return the ten coolest, cleanest districts over the forecast week."""
    try:
        ranking, from_cache = RANKING_ENGINE.compute_ranking()
    except ForecastError as exc:
        raise _upstream_failure(exc) from exc
    response.headers["X-Cache"] = "HIT" if from_cache else "MISS"
    return list(ranking)


@router.post("/recommendation", response_model=Recommendation)
def post_recommendation(trip: TripRequest):
    """Advise whether travelling to the destination district is worthwhile."""
    logger.info(
        "Evaluating trip",
        extra={"destination": trip.destination_name, "travel_date": trip.travel_date.isoformat()},
    )
    try:
        return RECOMMENDATION_ENGINE.recommend(trip)
    except ForecastError as exc:
        raise _upstream_failure(exc) from exc


@router.get("/health", response_model=HealthResponse)
def health():
    """Report liveness and the number of loaded districts."""
    return HealthResponse(status="ok", regions=len(CATALOG.load_regions()))
