"""FastAPI application setup and cache-warmup lifecycle for the District Advisor."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import RANKING_ENGINE, router as api_router
from .config import settings
from .warmup import CacheWarmupWorker
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="advisor/main")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Run the cache warmup worker for the lifetime of the app."""
    worker = None
    if settings.enable_cache_warmup:
        worker = CacheWarmupWorker(RANKING_ENGINE, interval_seconds=settings.refresh_interval_seconds)
        worker.start()
    else:
        logger.info("Cache warmup disabled (ADVISOR_ENABLE_CACHE_WARMUP=false)")
    try:
        yield
    finally:
        if worker is not None:
            worker.stop()


app = FastAPI(title="District Advisor", lifespan=lifespan)

# API routes
app.include_router(api_router, prefix="/api/v1")
