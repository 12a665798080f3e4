"""
Spatial store interface.

A spatial store answers the four questions the subzone locator asks:
which subzone contains a point, does a given subzone contain a point,
what are the subzones with their bounding boxes, and what is a planning
area called.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..cache.models import SubzoneRow


class SpatialStore(ABC):
    """Abstract base class for subzone polygon stores.

    Implementations raise SpatialQueryError on failure.
    """

    @abstractmethod
    def find_subzone_by_point(self, lat: float, lng: float) -> List[SubzoneRow]:
        """Return the subzone(s) whose polygon contains the point."""
        pass

    @abstractmethod
    def check_point_in_subzone(self, subzone_id: str, lat: float, lng: float) -> bool:
        """Return True if the subzone's polygon contains the point."""
        pass

    @abstractmethod
    def list_subzones(self, limit: int = 1000) -> List[SubzoneRow]:
        """Return up to ``limit`` subzones with their bounding boxes."""
        pass

    @abstractmethod
    def get_planning_area_name(self, planning_area_id: str) -> Optional[str]:
        """Return the display name of a planning area, or None if unknown."""
        pass
