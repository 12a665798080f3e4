"""
Unit tests for the TTL caches and their backends.
"""

import pytest

from subzone_resolver.cache.backends import MemoryCacheBackend, SQLiteCacheBackend
from subzone_resolver.cache.cache_manager import (
    DAY_MS,
    PROJECT_CACHE_TTL_MS,
    QUERY_CACHE_TTL_MS,
    CacheManager,
    TTLCache,
)
from subzone_resolver.cache.models import (
    Confidence,
    LatLng,
    ProjectLocation,
    ResolvedAddress,
    Source,
)


@pytest.fixture
def sample_location():
    return ProjectLocation(
        address="1 TAMPINES WALK",
        postal="528523",
        latlng=LatLng(lat=1.3545, lng=103.9402),
    )


@pytest.fixture
def sample_resolved():
    return ResolvedAddress(
        resolved_address="123 BEDOK NORTH STREET 1",
        postal="460123",
        latlng=LatLng(lat=1.33, lng=103.93),
        subzone_id="BDSZ01",
        subzone_name="Bedok North",
        planning_area_id="BD",
        planning_area_name="Bedok",
        confidence=Confidence.HIGH,
        source_chain=[Source.POSTAL, Source.ONEMAP, Source.SUBZONE],
        raw_query="460123",
        normalized_query="460123",
    )


class FailingBackend(MemoryCacheBackend):
    def get(self, key):
        raise RuntimeError("disk on fire")

    def set(self, key, entry):
        raise RuntimeError("disk on fire")

    def items(self):
        raise RuntimeError("disk on fire")


def test_ttls():
    assert QUERY_CACHE_TTL_MS == 7 * DAY_MS
    assert PROJECT_CACHE_TTL_MS == 30 * DAY_MS


def test_get_set_normalizes_key(clock, sample_location):
    cache = TTLCache("project_cache", PROJECT_CACHE_TTL_MS, clock=clock)
    cache.set("  Tampines Hub ", sample_location)
    assert cache.get("tampines hub") == sample_location
    assert cache.get("TAMPINES HUB") == sample_location
    assert cache.get("bedok") is None


def test_entry_expires_after_ttl(clock, sample_location):
    cache = TTLCache("project_cache", 1000, clock=clock)
    cache.set("tampines", sample_location)

    clock.advance(1000)
    assert cache.get("tampines") == sample_location

    clock.advance(1)
    assert cache.get("tampines") is None
    # Expired entries are deleted on read
    assert len(cache) == 0


def test_set_refreshes_timestamp(clock, sample_location):
    cache = TTLCache("project_cache", 1000, clock=clock)
    cache.set("tampines", sample_location)
    clock.advance(800)
    cache.set("tampines", sample_location)
    clock.advance(800)
    assert cache.get("tampines") == sample_location


def test_evict_expired(clock, sample_location):
    cache = TTLCache("project_cache", 1000, clock=clock)
    cache.set("old", sample_location)
    clock.advance(600)
    cache.set("new", sample_location)
    clock.advance(600)

    assert cache.evict_expired() == 1
    assert len(cache) == 1
    assert cache.get("new") == sample_location


def test_backend_failures_never_raise(clock, sample_location):
    cache = TTLCache("project_cache", 1000, backend=FailingBackend(), clock=clock)
    cache.set("tampines", sample_location)
    assert cache.get("tampines") is None
    assert cache.evict_expired() == 0


def test_sqlite_backend_round_trip(tmp_path, clock, sample_resolved):
    db_path = tmp_path / "cache.db"
    cache = TTLCache(
        "query_cache",
        QUERY_CACHE_TTL_MS,
        backend=SQLiteCacheBackend(db_path, "query_cache", ResolvedAddress),
        clock=clock,
    )
    cache.set("460123", sample_resolved)

    # A second instance on the same file sees the entry
    reopened = TTLCache(
        "query_cache",
        QUERY_CACHE_TTL_MS,
        backend=SQLiteCacheBackend(db_path, "query_cache", ResolvedAddress),
        clock=clock,
    )
    restored = reopened.get("460123")
    assert restored == sample_resolved
    assert restored.confidence == Confidence.HIGH


def test_sqlite_namespaces_are_separate(tmp_path, clock, sample_location):
    manager = CacheManager.with_sqlite(tmp_path / "cache.db", clock=clock)
    manager.set_project("tampines", sample_location)

    assert manager.get_project("tampines") == sample_location
    assert manager.get_query("tampines") is None
    assert manager.get_statistics() == {
        "query_cache": {"entries": 0, "ttl_days": 7},
        "project_cache": {"entries": 1, "ttl_days": 30},
    }


def test_sqlite_expiry_and_sweep(tmp_path, clock, sample_location, sample_resolved):
    manager = CacheManager.with_sqlite(tmp_path / "cache.db", clock=clock)
    manager.set_query("460123", sample_resolved)
    manager.set_project("tampines", sample_location)

    clock.advance(QUERY_CACHE_TTL_MS + 1)
    assert manager.evict_expired() == 1
    assert manager.get_query("460123") is None
    assert manager.get_project("tampines") == sample_location

    clock.advance(PROJECT_CACHE_TTL_MS)
    assert manager.get_project("tampines") is None


def test_cache_manager_defaults_use_clock(clock, sample_location):
    manager = CacheManager(clock=clock)
    manager.set_project("tampines", sample_location)
    clock.advance(PROJECT_CACHE_TTL_MS + 1)
    assert manager.get_project("tampines") is None
