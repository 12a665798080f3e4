"""
Geocoder: runs the geocoding stages in priority order.

Postal code first, then free-text address search, then the project/POI
fallback. The first stage to produce a result wins; a stage that fails only
costs its own attempt.
"""

import logging
from typing import List, Optional

from .cache.cache_manager import CacheManager
from .cache.models import GeocodeResult
from .clients.onemap import OneMapClient
from .stages import AddressStage, BaseStage, PostalStage, ProjectStage, StageStatistics

logger = logging.getLogger(__name__)


class Geocoder:
    """Orchestrates geocoding stages with first-success short-circuit."""

    def __init__(self, stages: Optional[List[BaseStage]] = None):
        self.stages: List[BaseStage] = list(stages or [])

    @classmethod
    def default(cls, client: OneMapClient, cache_manager: CacheManager) -> "Geocoder":
        """Build the standard postal -> address -> project chain."""
        address_stage = AddressStage(client)
        return cls([
            PostalStage(client),
            address_stage,
            ProjectStage(address_stage, cache_manager),
        ])

    def geocode(self, query: str) -> Optional[GeocodeResult]:
        """Geocode a raw query.

        Args:
            query: Raw user query

        Returns:
            GeocodeResult from the first successful stage, or None
        """
        for stage in self.stages:
            stage_result = stage.run(query)
            if stage_result.skipped:
                logger.debug(f"[{stage.stage_name}] Skipped: {stage_result.skip_reason}")
                continue
            if stage_result.success:
                logger.debug(
                    f"[{stage.stage_name}] Resolved '{query}' in {stage_result.processing_time_ms}ms"
                )
                return stage_result.geocode_result

        logger.info(f"All geocoding stages failed for '{query}'")
        return None

    def get_statistics(self) -> List[StageStatistics]:
        return [stage.get_statistics() for stage in self.stages]
