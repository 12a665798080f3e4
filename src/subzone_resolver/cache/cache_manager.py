"""
Time-to-live caches for resolution results.

Two independent stores are kept: one for raw queries (7 days) and one for
named-project lookups (30 days). Staleness is checked on every read; stale
entries are deleted when they are read. A full sweep is available through
``CacheManager.evict_expired``.
"""

import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel

from .backends import CacheBackend, CacheEntry, MemoryCacheBackend, SQLiteCacheBackend
from .models import ProjectLocation, ResolvedAddress

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DAY_MS = 24 * 60 * 60 * 1000
QUERY_CACHE_TTL_MS = 7 * DAY_MS
PROJECT_CACHE_TTL_MS = 30 * DAY_MS


def _now_ms() -> float:
    return time.time() * 1000


class TTLCache(Generic[T]):
    """A keyed cache whose entries expire ``ttl_ms`` after they are written.

    Operations are best-effort: backend failures are logged and behave as a
    miss (reads) or a no-op (writes), never raising to the caller.
    """

    def __init__(
        self,
        name: str,
        ttl_ms: float,
        backend: Optional[CacheBackend[T]] = None,
        clock: Callable[[], float] = _now_ms,
    ):
        """Initialize cache.

        Args:
            name: Cache name used in logs and statistics
            ttl_ms: Time-to-live of each entry in milliseconds
            backend: Storage backend (default: in-memory)
            clock: Returns current time in epoch milliseconds
        """
        self.name = name
        self.ttl_ms = ttl_ms
        self.backend = backend if backend is not None else MemoryCacheBackend()
        self.clock = clock

    @staticmethod
    def normalize_key(key: str) -> str:
        return key.lower().strip()

    def get(self, key: str) -> Optional[T]:
        """Get a live value, deleting it if it has expired.

        Args:
            key: Cache key (normalized internally)

        Returns:
            Cached value, or None on miss, expiry or backend error
        """
        normalized = self.normalize_key(key)
        try:
            entry = self.backend.get(normalized)
            if entry is None:
                return None

            if entry.is_expired(self.clock()):
                logger.debug(f"[{self.name}] Expired entry evicted: {normalized}")
                self.backend.delete(normalized)
                return None

            return entry.data
        except Exception as e:
            logger.warning(f"[{self.name}] Cache read failed for '{normalized}': {e}")
            return None

    def set(self, key: str, value: T) -> None:
        """Store a value stamped with the current time."""
        normalized = self.normalize_key(key)
        entry = CacheEntry(data=value, timestamp=self.clock(), ttl=self.ttl_ms)
        try:
            self.backend.set(normalized, entry)
        except Exception as e:
            logger.warning(f"[{self.name}] Cache write failed for '{normalized}': {e}")

    def evict_expired(self) -> int:
        """Delete every expired entry.

        Returns:
            Number of entries deleted
        """
        now = self.clock()
        evicted = 0
        try:
            for key, entry in self.backend.items():
                if entry.is_expired(now):
                    self.backend.delete(key)
                    evicted += 1
        except Exception as e:
            logger.warning(f"[{self.name}] Cache sweep failed: {e}")
        return evicted

    def __len__(self) -> int:
        try:
            return len(self.backend)
        except Exception as e:
            logger.warning(f"[{self.name}] Cache size unavailable: {e}")
            return 0


class CacheManager:
    """Owns the raw-query cache and the project-name cache."""

    def __init__(
        self,
        query_cache: Optional[TTLCache[ResolvedAddress]] = None,
        project_cache: Optional[TTLCache[ProjectLocation]] = None,
        clock: Callable[[], float] = _now_ms,
    ):
        """Initialize cache manager.

        Args:
            query_cache: Cache of resolved raw queries (default: in-memory, 7 days)
            project_cache: Cache of project locations (default: in-memory, 30 days)
            clock: Clock used by the default caches, in epoch milliseconds
        """
        self.query_cache = query_cache or TTLCache("query_cache", QUERY_CACHE_TTL_MS, clock=clock)
        self.project_cache = project_cache or TTLCache(
            "project_cache", PROJECT_CACHE_TTL_MS, clock=clock
        )

    @classmethod
    def with_sqlite(
        cls,
        db_path: Path,
        query_ttl_ms: float = QUERY_CACHE_TTL_MS,
        project_ttl_ms: float = PROJECT_CACHE_TTL_MS,
        clock: Callable[[], float] = _now_ms,
    ) -> "CacheManager":
        """Create a cache manager whose stores persist in one SQLite file."""
        return cls(
            query_cache=TTLCache(
                "query_cache",
                query_ttl_ms,
                backend=SQLiteCacheBackend(db_path, "query_cache", ResolvedAddress),
                clock=clock,
            ),
            project_cache=TTLCache(
                "project_cache",
                project_ttl_ms,
                backend=SQLiteCacheBackend(db_path, "project_cache", ProjectLocation),
                clock=clock,
            ),
        )

    def get_query(self, query: str) -> Optional[ResolvedAddress]:
        return self.query_cache.get(query)

    def set_query(self, query: str, result: ResolvedAddress) -> None:
        self.query_cache.set(query, result)

    def get_project(self, project_name: str) -> Optional[ProjectLocation]:
        return self.project_cache.get(project_name)

    def set_project(self, project_name: str, location: ProjectLocation) -> None:
        self.project_cache.set(project_name, location)

    def evict_expired(self) -> int:
        """Delete expired entries from both stores.

        Returns:
            Total number of entries deleted
        """
        evicted = self.query_cache.evict_expired() + self.project_cache.evict_expired()
        if evicted:
            logger.info(f"Evicted {evicted} expired cache entries")
        return evicted

    def get_statistics(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with entry counts and TTLs per store
        """
        return {
            cache.name: {
                "entries": len(cache),
                "ttl_days": cache.ttl_ms / DAY_MS,
            }
            for cache in (self.query_cache, self.project_cache)
        }
