"""
Supabase (PostgREST + PostGIS) spatial store.

Talks to the Supabase REST endpoint with plain HTTP. Point containment is
done server-side by two PostGIS functions; the subzone and planning area
tables are read directly.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from ..cache.models import SubzoneRow
from ..errors import SpatialQueryError
from .base import SpatialStore

logger = logging.getLogger(__name__)


class SupabaseSpatialStore(SpatialStore):
    """Spatial store backed by a Supabase project."""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        """Initialize Supabase store.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co
            api_key: Anon or service-role key
            timeout: Request timeout in seconds
            session: Optional requests session (a new one is created if omitted)
        """
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.rest_url}/{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise SpatialQueryError(f"Supabase {method} {path} failed: {e}") from e
        except ValueError as e:
            raise SpatialQueryError(f"Supabase {method} {path} returned non-JSON body") from e

    def _rpc(self, function: str, params: Dict[str, Any]) -> Any:
        return self._request("POST", f"rpc/{function}", json=params)

    @staticmethod
    def _rows(payload: Any, context: str) -> List[SubzoneRow]:
        if payload is None:
            return []
        if isinstance(payload, dict):
            payload = [payload]
        if not isinstance(payload, list):
            raise SpatialQueryError(f"{context} returned unexpected payload")
        try:
            return [SubzoneRow.model_validate(row) for row in payload]
        except ValidationError as e:
            raise SpatialQueryError(f"{context} returned malformed rows: {e}") from e

    def find_subzone_by_point(self, lat: float, lng: float) -> List[SubzoneRow]:
        payload = self._rpc("find_subzone_by_point", {"p_lat": lat, "p_lng": lng})
        return self._rows(payload, "find_subzone_by_point")

    def check_point_in_subzone(self, subzone_id: str, lat: float, lng: float) -> bool:
        payload = self._rpc(
            "check_point_in_subzone",
            {"subzone_id": subzone_id, "p_lat": lat, "p_lng": lng},
        )
        # The function may return a row set or a single object
        if isinstance(payload, list):
            payload = payload[0] if payload else {}
        if not isinstance(payload, dict):
            return False
        return bool(payload.get("contains"))

    def list_subzones(self, limit: int = 1000) -> List[SubzoneRow]:
        payload = self._request(
            "GET",
            "subzones",
            params={"select": "id,name,planning_area_id,region,bbox", "limit": limit},
        )
        rows = self._rows(payload, "subzones")
        logger.debug(f"Fetched {len(rows)} subzones (limit {limit})")
        return rows

    def get_planning_area_name(self, planning_area_id: str) -> Optional[str]:
        payload = self._request(
            "GET",
            "planning_areas",
            params={"select": "name", "id": f"eq.{planning_area_id}"},
        )
        if not isinstance(payload, list) or not payload:
            return None
        name = payload[0].get("name") if isinstance(payload[0], dict) else None
        return name or None
