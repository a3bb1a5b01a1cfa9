"""Ranked-result cache backends."""

from .base import RANKING_CACHE_KEY, ResultCache
from .memory import InMemoryResultCache

__all__ = [
    "RANKING_CACHE_KEY",
    "ResultCache",
    "InMemoryResultCache",
]
