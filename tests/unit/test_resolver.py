"""
Unit tests for the address resolver end to end, with fake OneMap and
spatial store.
"""

import pytest

from conftest import FakeOneMapClient, FakeSpatialStore, onemap_response, onemap_row
from subzone_resolver.cache.cache_manager import QUERY_CACHE_TTL_MS
from subzone_resolver.cache.models import Confidence, LatLng, ProjectLocation, Source
from subzone_resolver.geocoder import Geocoder
from subzone_resolver.resolver import AddressResolver, candidate_cache_key
from subzone_resolver.spatial.locator import SubzoneLocator

SUBZONES = [
    {
        "id": "AMSZ01", "name": "Ang Mo Kio Town Centre", "planning_area_id": "AM",
        "bbox": {"minLat": 1.36, "maxLat": 1.38, "minLng": 103.83, "maxLng": 103.86},
    },
    {
        "id": "GLSZ01", "name": "Geylang East", "planning_area_id": "GL",
        "bbox": {"minLat": 1.30, "maxLat": 1.33, "minLng": 103.87, "maxLng": 103.90},
    },
    {
        "id": "TMSZ01", "name": "Tampines East", "planning_area_id": "TM",
        "bbox": {"minLat": 1.34, "maxLat": 1.37, "minLng": 103.93, "maxLng": 103.96},
    },
]
PLANNING_AREAS = {"AM": "Ang Mo Kio", "GL": "Geylang", "TM": "Tampines"}


@pytest.fixture
def client():
    return FakeOneMapClient({
        "560123": onemap_response(
            onemap_row("123 ANG MO KIO AVE 3 SINGAPORE 560123", 1.3691, 103.8454, postal="560123"),
        ),
        "38 Lorong 30 Geylang": onemap_response(
            onemap_row("38 LORONG 30 GEYLANG SINGAPORE 398367", 1.3150, 103.8870,
                       postal="398367", road_name="LORONG 30 GEYLANG"),
            onemap_row("30 GEYLANG EAST AVE SINGAPORE 222222", 1.3180, 103.8900,
                       postal="222222", road_name="GEYLANG EAST AVE"),
            onemap_row("1 NOWHERE LANE", 1.3000, 103.6500, road_name="NOWHERE LANE"),
        ),
        "Tampines": onemap_response(onemap_row("TAMPINES", 1.3541, 103.9435)),
    })


@pytest.fixture
def store():
    return FakeSpatialStore(subzone_rows=SUBZONES, planning_areas=PLANNING_AREAS)


@pytest.fixture
def resolver(client, store, cache_manager):
    return AddressResolver(
        geocoder=Geocoder.default(client, cache_manager),
        locator=SubzoneLocator(store),
        cache_manager=cache_manager,
    )


def test_postal_resolution(resolver):
    result = resolver.resolve("560123")

    assert result.resolved_address == "123 ANG MO KIO AVE 3 SINGAPORE 560123"
    assert result.postal == "560123"
    assert result.latlng == LatLng(lat=1.3691, lng=103.8454)
    assert result.subzone_id == "AMSZ01"
    assert result.subzone_name == "Ang Mo Kio Town Centre"
    assert result.planning_area_id == "AM"
    assert result.planning_area_name == "Ang Mo Kio"
    assert result.confidence == Confidence.HIGH
    assert result.source_chain == ["postal", "onemap", "subzone"]
    assert result.raw_query == "560123"
    assert result.normalized_query == "560123"


def test_second_resolve_is_served_from_cache(resolver, client, store):
    first = resolver.resolve("  38   Lorong 30 Geylang ")
    onemap_calls, store_calls = len(client.calls), len(store.calls)

    second = resolver.resolve("38 Lorong 30 Geylang")

    assert second == first
    assert len(client.calls) == onemap_calls
    assert len(store.calls) == store_calls


def test_cache_entry_expires(resolver, client, clock):
    resolver.resolve("560123")
    clock.advance(QUERY_CACHE_TTL_MS + 1)
    resolver.resolve("560123")
    assert client.calls == ["560123", "560123"]


def test_address_resolution_keeps_candidates(resolver):
    result = resolver.resolve("38 Lorong 30 Geylang")

    assert result.subzone_name == "Geylang East"
    assert result.source_chain == ["onemap", "subzone"]
    assert [c.address for c in result.candidates] == [
        "30 GEYLANG EAST AVE SINGAPORE 222222",
        "1 NOWHERE LANE",
    ]
    assert all(c.subzone_id is None for c in result.candidates)
    assert "raw_query" in result.to_dict()


def test_resolve_candidate_is_high_confidence(resolver, cache_manager):
    result = resolver.resolve_candidate("38 Lorong 30 Geylang", 0)

    assert result.resolved_address == "30 GEYLANG EAST AVE SINGAPORE 222222"
    assert result.postal == "222222"
    assert result.confidence == Confidence.HIGH
    assert result.source_chain == ["onemap", "subzone"]
    assert result.candidates == []
    assert cache_manager.get_query(candidate_cache_key("38 Lorong 30 Geylang", 0)) == result
    # The query's own cache key is untouched
    assert cache_manager.get_query("38 Lorong 30 Geylang") is None


def test_resolve_candidate_uses_cache(resolver, client):
    first = resolver.resolve_candidate("38 Lorong 30 Geylang", 0)
    calls = len(client.calls)
    assert resolver.resolve_candidate("38 Lorong 30 Geylang", 0) == first
    assert len(client.calls) == calls


@pytest.mark.parametrize("index", [-1, 2, 10])
def test_resolve_candidate_out_of_range(resolver, index):
    assert resolver.resolve_candidate("38 Lorong 30 Geylang", index) is None


def test_resolve_candidate_without_candidates(resolver):
    assert resolver.resolve_candidate("560123", 0) is None


def test_candidate_outside_every_subzone_is_none(resolver):
    assert resolver.resolve_candidate("38 Lorong 30 Geylang", 1) is None


def test_unresolvable_queries(resolver, cache_manager):
    assert resolver.resolve("") is None
    assert resolver.resolve("   ") is None
    assert resolver.resolve("Atlantis") is None
    assert len(cache_manager.query_cache) == 0


def test_unmapped_coordinates_are_not_cached(client, cache_manager):
    resolver = AddressResolver(
        geocoder=Geocoder.default(client, cache_manager),
        locator=SubzoneLocator(FakeSpatialStore()),
        cache_manager=cache_manager,
    )
    assert resolver.resolve("560123") is None
    assert len(cache_manager.query_cache) == 0


def test_project_query_is_remembered(resolver, cache_manager):
    result = resolver.resolve("Tampines")

    assert result.subzone_name == "Tampines East"
    assert result.confidence == Confidence.MEDIUM
    location = cache_manager.get_project("tampines")
    assert location.latlng == LatLng(lat=1.3541, lng=103.9435)


def test_project_cache_feeds_geocoding(client, store, cache_manager):
    cache_manager.set_project("tampines hub", ProjectLocation(
        address="TAMPINES HUB", latlng=LatLng(lat=1.3530, lng=103.9400),
    ))
    resolver = AddressResolver(
        geocoder=Geocoder.default(client, cache_manager),
        locator=SubzoneLocator(store),
        cache_manager=cache_manager,
    )
    result = resolver.resolve("Tampines Hub")

    assert result.source_chain == [Source.PROJECT, Source.ONEMAP, Source.SUBZONE]
    assert result.resolved_address == "TAMPINES HUB"


def test_maintenance_sweep_is_probabilistic(client, store, cache_manager, clock):
    resolver = AddressResolver(
        geocoder=Geocoder.default(client, cache_manager),
        locator=SubzoneLocator(store),
        cache_manager=cache_manager,
        maintenance_probability=0.5,
        random_fn=lambda: 0.1,
    )
    resolver.resolve("560123")
    clock.advance(QUERY_CACHE_TTL_MS + 1)
    resolver.resolve("Tampines")

    # The sweep ran before the second lookup and removed the stale entry
    assert cache_manager.get_statistics()["query_cache"]["entries"] == 1
