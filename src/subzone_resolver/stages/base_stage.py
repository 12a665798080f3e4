"""
Base class for all geocoding stages.

Each stage is one strategy in the geocoder's fallback chain. Stages share a
common runner that times the attempt, records statistics and turns any
failure into "no result from this stage" so the chain can move on.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..cache.models import GeocodeResult
from ..errors import GeocodingError

logger = logging.getLogger(__name__)


@dataclass
class StageResult:
    """Result of running a single query through a stage."""
    stage_name: str
    success: bool
    geocode_result: Optional[GeocodeResult] = None
    skipped: bool = False
    skip_reason: Optional[str] = None
    error: Optional[str] = None
    processing_time_ms: int = 0


@dataclass
class StageStatistics:
    """Statistics for a stage."""
    stage_name: str
    attempts: int = 0
    skipped: int = 0
    succeeded: int = 0
    missed: int = 0
    failed: int = 0
    total_time_ms: int = 0

    def add_result(self, result: StageResult) -> None:
        """Add a result to statistics."""
        self.attempts += 1
        self.total_time_ms += result.processing_time_ms

        if result.skipped:
            self.skipped += 1
        elif result.error is not None:
            self.failed += 1
        elif result.success:
            self.succeeded += 1
        else:
            self.missed += 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        processed = self.attempts - self.skipped
        return {
            "stage_name": self.stage_name,
            "attempts": self.attempts,
            "skipped": self.skipped,
            "succeeded": self.succeeded,
            "missed": self.missed,
            "failed": self.failed,
            "avg_time_ms": self.total_time_ms / processed if processed > 0 else 0,
            "total_time_ms": self.total_time_ms,
        }


class BaseStage(ABC):
    """Abstract base class for geocoding stages."""

    def __init__(self, stage_name: str):
        self.stage_name = stage_name
        self.stats = StageStatistics(stage_name=stage_name)

    @abstractmethod
    def geocode(self, query: str) -> Optional[GeocodeResult]:
        """Geocode a query with this stage's strategy.

        Args:
            query: Raw user query

        Returns:
            GeocodeResult on success, None if this strategy found nothing

        Raises:
            GeocodingError: If the external service fails or misbehaves
        """
        pass

    def should_skip(self, query: str) -> tuple[bool, Optional[str]]:
        """Check whether this stage applies to the query at all.

        Returns:
            Tuple of (should_skip, reason)
        """
        return False, None

    def run(self, query: str) -> StageResult:
        """Run stage on a single query, never raising.

        Args:
            query: Raw user query

        Returns:
            StageResult
        """
        start_time = time.time()

        should_skip, skip_reason = self.should_skip(query)
        if should_skip:
            result = StageResult(
                stage_name=self.stage_name,
                success=False,
                skipped=True,
                skip_reason=skip_reason,
                processing_time_ms=int((time.time() - start_time) * 1000),
            )
            self.stats.add_result(result)
            return result

        error = None
        geocode_result = None
        try:
            geocode_result = self.geocode(query)
        except GeocodingError as e:
            logger.warning(f"[{self.stage_name}] {e}")
            error = str(e)
        except Exception as e:
            logger.error(f"[{self.stage_name}] Unexpected error geocoding '{query}': {e}")
            error = str(e)

        result = StageResult(
            stage_name=self.stage_name,
            success=geocode_result is not None,
            geocode_result=geocode_result,
            error=error,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        self.stats.add_result(result)
        return result

    def get_statistics(self) -> StageStatistics:
        return self.stats
