"""
Memoization of computed views.

Holds exactly one entry: the views for the last (snapshot, filter,
reference date) combination. A different key replaces the entry as a
whole, so readers always see either the old or the new views, never a
mix.

Usage:
    from ledger_core.cache import ViewCache

    cache = ViewCache()
    views = cache.get_or_compute(key, lambda: build_views(snapshot, descriptor))
"""
import threading
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional, Tuple, TypeVar

from ledger_core.config import config
from ledger_core.observability import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheStats:
    """Cache statistics for monitoring."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for diagnostics."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "invalidations": self.invalidations,
            "hit_rate_percent": round(self.hit_rate, 2),
        }

    def reset(self) -> None:
        """Reset all counters."""
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.invalidations = 0


class ViewCache:
    """
    Single-entry memo keyed on (snapshot identity, filter descriptor).

    Single writer: the entry is swapped in one assignment under a lock,
    so concurrent readers see a complete entry or none.
    """

    def __init__(self, enabled: bool = config.cache.enabled):
        self.enabled = enabled
        self._entry: Optional[Tuple[Hashable, Any]] = None
        self._lock = threading.Lock()
        self._stats = CacheStats()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def get(self, key: Hashable) -> Optional[Any]:
        """Cached value for key, or None on a miss."""
        with self._lock:
            entry = self._entry
            if self.enabled and entry is not None and entry[0] == key:
                self._stats.hits += 1
                return entry[1]
            self._stats.misses += 1
            return None

    def set(self, key: Hashable, value: Any) -> None:
        """Replace the single entry."""
        if not self.enabled:
            return
        with self._lock:
            self._entry = (key, value)
            self._stats.sets += 1

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        """Return the cached value for key, computing and storing it on a miss."""
        cached = self.get(key)
        if cached is not None:
            logger.debug("View cache hit", extra={"cache_key": repr(key)})
            return cached
        value = compute()
        self.set(key, value)
        return value

    def invalidate(self, reason: str = "") -> bool:
        """
        Drop the cached entry.

        Returns:
            True if there was an entry to drop
        """
        with self._lock:
            had_entry = self._entry is not None
            self._entry = None
            if had_entry:
                self._stats.invalidations += 1
        if had_entry:
            logger.debug("View cache invalidated", extra={"reason": reason})
        return had_entry
