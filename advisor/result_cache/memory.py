"""In-memory, single-slot result cache with an absolute TTL."""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from advisor.domain import RankedResult
from advisor.result_cache.base import RANKING_CACHE_KEY, ResultCache

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="result_cache/in_memory_result_cache")


@dataclass(frozen=True)
class _Entry:
    value: RankedResult
    expires_at: float
    version: int


class InMemoryResultCache(ResultCache):
    """Thread-safe holder for one ranked snapshot.

    Readers either see a whole snapshot or a miss: the entry is swapped as one
    immutable object under the lock. An expired entry stays in the slot (it is
    only ever replaced by a successful ``put``) but is never returned.
    """

    def __init__(self, key: str = RANKING_CACHE_KEY, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize an empty slot; ``clock`` must be monotonic (seconds)."""
        logger.debug("Initializing InMemoryResultCache", extra={"key": key})
        self.key = key
        self._clock = clock
        self._entry: Optional[_Entry] = None
        self._version = 0
        self._lock = threading.Lock()

    @property
    def version(self) -> int:
        """Number of snapshots written so far."""
        with self._lock:
            return self._version

    def get(self) -> Optional[RankedResult]:
        """Return the live snapshot, or None if empty or expired."""
        with self._lock:
            entry = self._entry
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                logger.debug("Cached ranking expired", extra={"key": self.key, "version": entry.version})
                return None
            return entry.value

    def put(self, value: RankedResult, ttl_seconds: float) -> None:
        """Overwrite the slot and reset expiry to now + ttl_seconds."""
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        snapshot = tuple(value)
        with self._lock:
            now = self._clock()
            self._version += 1
            self._entry = _Entry(
                value=snapshot,
                expires_at=now + ttl_seconds,
                version=self._version,
            )
            logger.debug("Cached ranking stored", extra={"key": self.key, "version": self._version, "ttl": ttl_seconds})

    def clear(self) -> None:
        """Drop the cached snapshot."""
        with self._lock:
            self._entry = None
