"""
Storage backends for the TTL caches.

The in-memory backend is the default and matches the process-local
behaviour of the resolver. The SQLite backend keeps entries across
restarts for deployments that want a warm cache.
"""

import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Generic, Iterator, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value with its creation time and time-to-live (both in ms)."""
    data: T
    timestamp: float
    ttl: float

    def is_expired(self, now_ms: float) -> bool:
        return now_ms - self.timestamp > self.ttl


class CacheBackend(ABC, Generic[T]):
    """Keyed storage for cache entries. Keys arrive already normalized."""

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry[T]]:
        pass

    @abstractmethod
    def set(self, key: str, entry: CacheEntry[T]) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def items(self) -> List[Tuple[str, CacheEntry[T]]]:
        """Snapshot of all stored entries."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class MemoryCacheBackend(CacheBackend[T]):
    """Process-local dictionary backend."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> Optional[CacheEntry[T]]:
        return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry[T]) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def items(self) -> List[Tuple[str, CacheEntry[T]]]:
        return list(self._entries.items())

    def __len__(self) -> int:
        return len(self._entries)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS cache_entries (
    namespace TEXT NOT NULL,
    cache_key TEXT NOT NULL,
    payload TEXT NOT NULL,
    timestamp_ms REAL NOT NULL,
    ttl_ms REAL NOT NULL,
    PRIMARY KEY (namespace, cache_key)
);
"""


class SQLiteCacheBackend(CacheBackend[T]):
    """SQLite backend storing entries as JSON payloads.

    Several caches can share one database file; each one uses its own
    namespace. Values are rehydrated with ``model``.
    """

    def __init__(self, db_path: Path, namespace: str, model: Type[T]):
        """Initialize SQLite backend.

        Args:
            db_path: Path to SQLite database file
            namespace: Name separating this cache's keys from others in the file
            model: Pydantic model class of the cached values
        """
        self.db_path = Path(db_path)
        self.namespace = namespace
        self.model = model
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        """Create the table if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._get_connection() as conn:
            conn.executescript(SCHEMA_SQL)

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get database connection with proper error handling."""
        conn = sqlite3.connect(self.db_path, timeout=30.0, isolation_level="DEFERRED")
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _row_to_entry(self, row: sqlite3.Row) -> CacheEntry[T]:
        return CacheEntry(
            data=self.model.model_validate_json(row["payload"]),
            timestamp=row["timestamp_ms"],
            ttl=row["ttl_ms"],
        )

    def get(self, key: str) -> Optional[CacheEntry[T]]:
        with self._get_connection() as conn:
            row = conn.execute(
                """SELECT payload, timestamp_ms, ttl_ms FROM cache_entries
                   WHERE namespace = ? AND cache_key = ?""",
                (self.namespace, key),
            ).fetchone()
            return self._row_to_entry(row) if row else None

    def set(self, key: str, entry: CacheEntry[T]) -> None:
        with self._get_connection() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO cache_entries (
                    namespace, cache_key, payload, timestamp_ms, ttl_ms
                ) VALUES (?, ?, ?, ?, ?)""",
                (
                    self.namespace,
                    key,
                    entry.data.model_dump_json(),
                    entry.timestamp,
                    entry.ttl,
                ),
            )

    def delete(self, key: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "DELETE FROM cache_entries WHERE namespace = ? AND cache_key = ?",
                (self.namespace, key),
            )

    def items(self) -> List[Tuple[str, CacheEntry[T]]]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """SELECT cache_key, payload, timestamp_ms, ttl_ms FROM cache_entries
                   WHERE namespace = ?""",
                (self.namespace,),
            ).fetchall()
            return [(row["cache_key"], self._row_to_entry(row)) for row in rows]

    def __len__(self) -> int:
        with self._get_connection() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM cache_entries WHERE namespace = ?",
                (self.namespace,),
            ).fetchone()[0]
