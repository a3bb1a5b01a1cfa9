"""Background thread that keeps the district ranking cache warm."""
from __future__ import annotations

import threading
from typing import Optional

from advisor.errors import RankingCancelled
from advisor.ranking import RankingEngine
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="warmup")

DEFAULT_INTERVAL_SECONDS = 30 * 60


class CacheWarmupWorker:
    """
    Calls ``RankingEngine.compute_ranking`` once at start and then on a fixed interval.

    The worker owns no state beyond its thread and stop event. Failures are
    logged and the loop carries on; nothing is raised to callers. Stopping
    sets the event the engine checks before writing the cache, so an
    in-flight refresh interrupted by shutdown never stores its result.
    """

    def __init__(self, engine: RankingEngine, interval_seconds: float = DEFAULT_INTERVAL_SECONDS) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.engine = engine
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, stop_event: Optional[threading.Event] = None) -> bool:
        """Refresh the ranking; return True on success, False if it failed or was cancelled."""
        try:
            ranking, from_cache = self.engine.compute_ranking(cancel_event=stop_event or self._stop)
        except RankingCancelled:
            logger.info("Cache warmup cancelled")
            return False
        except Exception:
            logger.exception("Cache warmup failed")
            return False
        logger.info("Cache warmup completed", extra={"top_count": len(ranking), "from_cache": from_cache})
        return True

    def _run(self, stop_event: threading.Event) -> None:
        self.run_once(stop_event)
        while not stop_event.wait(self.interval_seconds):
            self.run_once(stop_event)

    def start(self) -> None:
        if self.running:
            return
        # Each run gets its own event: a thread that outlived stop() keeps its set event.
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop,), name="cache-warmup", daemon=True)
        self._thread.start()
        logger.info("Cache warmup worker started", extra={"interval_seconds": self.interval_seconds})

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Cache warmup thread still finishing a refresh", extra={"timeout": timeout})
            self._thread = None
        logger.info("Cache warmup worker stopped")
