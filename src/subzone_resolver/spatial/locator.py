"""
Coordinate to subzone mapping.

Strategies are tried in order until one answers:

1. point query: the store's own containment query (exact, one call)
2. bounding box: cheap bbox filter over all subzones, then an exact
   containment check per remaining candidate; if no check confirms, the
   first bbox candidate is returned as a best-effort answer
"""

import logging
from typing import Callable, List, Optional

from ..cache.models import SubzoneData, SubzoneRow
from ..errors import SpatialQueryError
from .base import SpatialStore

logger = logging.getLogger(__name__)

SUBZONE_FETCH_LIMIT = 1000

LocateStrategy = Callable[[float, float], Optional[SubzoneData]]


class SubzoneLocator:
    """Maps a coordinate to the enclosing subzone."""

    def __init__(self, store: SpatialStore, fetch_limit: int = SUBZONE_FETCH_LIMIT):
        """Initialize locator.

        Args:
            store: Spatial store to query
            fetch_limit: Maximum subzones read by the bounding-box strategy
        """
        self.store = store
        self.fetch_limit = fetch_limit
        self.strategies: List[LocateStrategy] = [
            self._locate_by_point_query,
            self._locate_by_bounding_box,
        ]

    def locate(self, lat: float, lng: float) -> Optional[SubzoneData]:
        """Find the subzone containing a point.

        Args:
            lat: Latitude
            lng: Longitude

        Returns:
            SubzoneData, or None if no strategy found an enclosing subzone
        """
        for strategy in self.strategies:
            subzone = strategy(lat, lng)
            if subzone is not None:
                return subzone
        return None

    def _locate_by_point_query(self, lat: float, lng: float) -> Optional[SubzoneData]:
        try:
            rows = self.store.find_subzone_by_point(lat, lng)
        except SpatialQueryError as e:
            logger.error(f"Point query failed, falling back to bounding boxes: {e}")
            return None

        for row in rows:
            subzone = row.to_subzone()
            if subzone is not None:
                return subzone
        return None

    def _locate_by_bounding_box(self, lat: float, lng: float) -> Optional[SubzoneData]:
        try:
            rows = self.store.list_subzones(limit=self.fetch_limit)
        except SpatialQueryError as e:
            logger.error(f"Error fetching subzones: {e}")
            return None

        candidates: List[SubzoneData] = []
        for row in rows:
            if row.bbox is None or not row.bbox.contains(lat, lng):
                continue
            subzone = row.to_subzone()
            if subzone is not None:
                candidates.append(subzone)

        if not candidates:
            logger.debug(f"No subzone bounding box contains ({lat}, {lng})")
            return None

        if len(candidates) == 1:
            return candidates[0]

        for candidate in candidates:
            try:
                if self.store.check_point_in_subzone(candidate.id, lat, lng):
                    return candidate
            except SpatialQueryError as e:
                logger.debug(f"Containment check failed for {candidate.id}: {e}")
                continue

        logger.warning(
            f"No containment check confirmed ({lat}, {lng}); "
            f"using first of {len(candidates)} bounding-box matches: {candidates[0].name}"
        )
        return candidates[0]

    def get_planning_area_name(self, planning_area_id: Optional[str]) -> Optional[str]:
        """Look up a planning area's display name. Never raises.

        Args:
            planning_area_id: Planning area id (may be empty)

        Returns:
            Name, or None if unknown or the lookup failed
        """
        if not planning_area_id:
            return None
        try:
            return self.store.get_planning_area_name(planning_area_id)
        except SpatialQueryError as e:
            logger.error(f"Error fetching planning area {planning_area_id}: {e}")
            return None
