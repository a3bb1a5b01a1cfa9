"""Shared protocol for ranked-result caches."""

from typing import Optional, Protocol

from advisor.domain import RankedResult

RANKING_CACHE_KEY = "top_districts"


class ResultCache(Protocol):
    """Single-slot cache for the most recent ranked result."""

    def get(self) -> Optional[RankedResult]:
        """Return the cached snapshot, or None if absent or expired."""

    def put(self, value: RankedResult, ttl_seconds: float) -> None:
        """Replace the snapshot and restart its expiry window."""

    def clear(self) -> None:
        """Drop any cached snapshot."""
