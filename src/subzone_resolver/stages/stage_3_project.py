"""
Stage 3: Project / point-of-interest fallback.

Named developments and buildings are remembered in the project cache for
30 days. On a cache miss the stage falls back to an address search on the
project text; no other point-of-interest provider is consulted.
"""

import logging
from typing import Optional

from ..cache.cache_manager import CacheManager
from ..cache.models import GeocodeResult, ProjectLocation, Source
from ..core.classifier import normalize_input
from .base_stage import BaseStage
from .stage_2_address import AddressStage

logger = logging.getLogger(__name__)


class ProjectStage(BaseStage):
    """Stage 3: Resolve a project name from the project cache or OneMap."""

    def __init__(
        self,
        address_stage: AddressStage,
        cache_manager: CacheManager,
    ):
        """Initialize project stage.

        Args:
            address_stage: Stage used for the OneMap fallback search
            cache_manager: Cache manager holding the project cache
        """
        super().__init__(stage_name="stage_3_project")
        self.address_stage = address_stage
        self.cache_manager = cache_manager

    def geocode(self, query: str) -> Optional[GeocodeResult]:
        project_name = normalize_input(query)

        cached = self.cache_manager.get_project(project_name)
        if cached is not None:
            logger.info(f"[{self.stage_name}] Project cache hit for '{project_name}'")
            return GeocodeResult(
                lat=cached.latlng.lat,
                lng=cached.latlng.lng,
                address=cached.address,
                postal=cached.postal,
                source=[Source.PROJECT, Source.ONEMAP],
            )

        result = self.address_stage.search_address(project_name)
        if result is None:
            return None

        self.cache_manager.set_project(project_name, location_from_result(result))
        return GeocodeResult(
            lat=result.lat,
            lng=result.lng,
            address=result.address,
            postal=result.postal,
            source=[Source.ONEMAP],
        )


def location_from_result(result: GeocodeResult) -> ProjectLocation:
    return ProjectLocation(
        address=result.address,
        postal=result.postal,
        latlng={"lat": result.lat, "lng": result.lng},
    )
