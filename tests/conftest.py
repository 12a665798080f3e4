"""
Shared fixtures and fakes for resolver tests.

Nothing here touches the network: OneMap, Supabase and the spatial store
are replaced by in-process fakes.
"""

from typing import Dict, List, Optional

import pytest
import requests

from subzone_resolver.cache.cache_manager import CacheManager
from subzone_resolver.cache.models import OneMapResponse, SubzoneRow
from subzone_resolver.errors import SpatialQueryError
from subzone_resolver.spatial.base import SpatialStore


def onemap_row(address, lat, lng, postal="NIL", road_name="", searchval=None):
    """Build one OneMap result row with string coordinates, as the API does."""
    return {
        "SEARCHVAL": searchval or address,
        "BLK_NO": "",
        "ROAD_NAME": road_name,
        "BUILDING": "NIL",
        "ADDRESS": address,
        "POSTAL": postal,
        "X": "0",
        "Y": "0",
        "LATITUDE": str(lat),
        "LONGITUDE": str(lng),
    }


def onemap_response(*rows) -> OneMapResponse:
    return OneMapResponse.model_validate({
        "found": len(rows),
        "totalNumPages": 1 if rows else 0,
        "pageNum": 1,
        "results": list(rows),
    })


class FakeOneMapClient:
    """Answers searches from a dict; unknown searches return an empty response."""

    def __init__(self, responses: Optional[Dict[str, object]] = None):
        self.responses = responses or {}
        self.calls: List[str] = []

    def search(self, search_val: str) -> OneMapResponse:
        self.calls.append(search_val)
        response = self.responses.get(search_val)
        if isinstance(response, Exception):
            raise response
        if response is None:
            return onemap_response()
        return response


class FakeSpatialStore(SpatialStore):
    """In-memory spatial store with configurable answers and failures."""

    def __init__(
        self,
        point_rows=None,
        subzone_rows=None,
        contains=None,
        planning_areas=None,
        fail=(),
    ):
        self.point_rows = [SubzoneRow.model_validate(r) for r in (point_rows or [])]
        self.subzone_rows = [SubzoneRow.model_validate(r) for r in (subzone_rows or [])]
        self.contains = contains or {}
        self.planning_areas = planning_areas or {}
        self.fail = set(fail)
        self.calls: List[str] = []

    def _call(self, name):
        self.calls.append(name)
        if name in self.fail:
            raise SpatialQueryError(f"{name} failed")

    def find_subzone_by_point(self, lat, lng):
        self._call("find_subzone_by_point")
        return list(self.point_rows)

    def check_point_in_subzone(self, subzone_id, lat, lng):
        self._call("check_point_in_subzone")
        return self.contains.get(subzone_id, False)

    def list_subzones(self, limit=1000):
        self._call("list_subzones")
        return self.subzone_rows[:limit]

    def get_planning_area_name(self, planning_area_id):
        self._call("get_planning_area_name")
        return self.planning_areas.get(planning_area_id)


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code=200, json_error=False):
        self.payload = payload
        self.status_code = status_code
        self.json_error = json_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if self.json_error:
            raise ValueError("No JSON object could be decoded")
        return self.payload


class FakeSession:
    """Records requests and replays queued responses (or raises exceptions)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.headers: Dict[str, str] = {}
        self.requests: List[dict] = []

    def _next(self):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        self.requests.append({"method": "GET", "url": url, **kwargs})
        return self._next()

    def request(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        return self._next()


class FakeClock:
    """Manually advanced clock in epoch milliseconds."""

    def __init__(self, now_ms: float = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_manager(clock):
    return CacheManager(clock=clock)
