"""
Address resolver: the single entry point for turning user input into a
subzone.

Steps:
1. Check the raw-query cache
2. Classify input
3. Geocode to coordinates
4. Map coordinates to a subzone
5. Calculate confidence
6. Cache and return the result

Any unresolved step ends the resolution with None; a partial result is
never returned or cached.
"""

import logging
import random
from typing import Callable, List, Optional

from .cache.cache_manager import CacheManager
from .cache.models import (
    AddressCandidate,
    Confidence,
    InputType,
    ResolvedAddress,
    Source,
)
from .core.classifier import classify_input, normalize_input
from .core.confidence import ConfidenceAssessor
from .geocoder import Geocoder
from .spatial.locator import SubzoneLocator
from .stages.stage_3_project import location_from_result

logger = logging.getLogger(__name__)

# Inputs whose successful geocode is remembered in the project cache
PROJECT_INPUT_TYPES = (InputType.PROJECT, InputType.MIXED)


class AddressResolver:
    """Resolves free-form location queries to subzones."""

    def __init__(
        self,
        geocoder: Geocoder,
        locator: SubzoneLocator,
        cache_manager: CacheManager,
        maintenance_probability: float = 0.0,
        random_fn: Callable[[], float] = random.random,
    ):
        """Initialize resolver.

        Args:
            geocoder: Geocoder running the postal/address/project stages
            locator: Coordinate-to-subzone locator
            cache_manager: Query and project caches
            maintenance_probability: Chance per resolve() call of sweeping
                expired cache entries (0 disables the sweep; expiry on read
                always applies)
            random_fn: Source of uniform [0, 1) numbers for the sweep
        """
        self.geocoder = geocoder
        self.locator = locator
        self.cache_manager = cache_manager
        self.maintenance_probability = maintenance_probability
        self.random_fn = random_fn
        self.confidence_assessor = ConfidenceAssessor()

    def resolve(self, query: str) -> Optional[ResolvedAddress]:
        """Resolve a query to a subzone.

        Args:
            query: Raw user input

        Returns:
            ResolvedAddress, or None if the query could not be resolved
        """
        if not query or not query.strip():
            return None

        self._maybe_run_maintenance()

        raw_query = query.strip()
        normalized_query = normalize_input(query)

        cached = self.cache_manager.get_query(normalized_query)
        if cached is not None:
            logger.info(f"Cache hit for query: {normalized_query}")
            return cached

        # Classification is diagnostic; the geocoder always tries postal first
        input_type = classify_input(normalized_query)
        logger.info(f"Input type: {input_type.value} for query: {raw_query}")

        geocode_result = self.geocoder.geocode(raw_query)
        if geocode_result is None:
            logger.info(f"Geocoding failed for query: {raw_query}")
            return None

        logger.info(
            f"Geocoded to: {geocode_result.lat}, {geocode_result.lng} "
            f"address: {geocode_result.address}"
        )

        result = self._build_result(
            lat=geocode_result.lat,
            lng=geocode_result.lng,
            address=geocode_result.address,
            postal=geocode_result.postal,
            confidence=self.confidence_assessor.calculate_confidence(geocode_result),
            sources=list(geocode_result.source),
            candidates=geocode_result.candidates,
            raw_query=raw_query,
            normalized_query=normalized_query,
        )
        if result is None:
            return None

        self.cache_manager.set_query(normalized_query, result)
        if input_type in PROJECT_INPUT_TYPES and Source.PROJECT not in geocode_result.source:
            self.cache_manager.set_project(normalized_query, location_from_result(geocode_result))

        return result

    def resolve_candidate(self, query: str, candidate_index: int) -> Optional[ResolvedAddress]:
        """Resolve one of the alternate candidates of a query.

        An explicit user selection is treated as ground truth, so the
        result always has High confidence.

        Args:
            query: Raw user input previously passed to resolve()
            candidate_index: Index into that result's ``candidates``

        Returns:
            ResolvedAddress for the chosen candidate, or None if it does
            not exist or cannot be mapped to a subzone
        """
        if not query or not query.strip() or candidate_index < 0:
            return None

        raw_query = query.strip()
        normalized_query = normalize_input(query)
        cache_key = candidate_cache_key(normalized_query, candidate_index)

        cached = self.cache_manager.get_query(cache_key)
        if cached is not None:
            logger.info(f"Cache hit for candidate {candidate_index} of query: {normalized_query}")
            return cached

        geocode_result = self.geocoder.geocode(raw_query)
        if geocode_result is None or not geocode_result.candidates:
            return None

        if candidate_index >= len(geocode_result.candidates):
            logger.info(
                f"Candidate {candidate_index} out of range "
                f"({len(geocode_result.candidates)} candidates) for query: {raw_query}"
            )
            return None

        candidate = geocode_result.candidates[candidate_index]
        result = self._build_result(
            lat=candidate.latlng.lat,
            lng=candidate.latlng.lng,
            address=candidate.address,
            postal=candidate.postal,
            confidence=Confidence.HIGH,
            sources=[Source.ONEMAP],
            candidates=[],
            raw_query=raw_query,
            normalized_query=normalized_query,
        )
        if result is None:
            return None

        self.cache_manager.set_query(cache_key, result)
        return result

    def _build_result(
        self,
        lat: float,
        lng: float,
        address: str,
        postal: Optional[str],
        confidence: Confidence,
        sources: List[Source],
        candidates: Optional[List[AddressCandidate]],
        raw_query: str,
        normalized_query: str,
    ) -> Optional[ResolvedAddress]:
        """Locate the subzone and assemble the record, or None if unmapped."""
        subzone = self.locator.locate(lat, lng)
        if subzone is None:
            logger.info(f"Subzone mapping failed for coordinates: {lat}, {lng}")
            return None

        logger.info(f"Mapped to subzone: {subzone.name} {subzone.id}")

        planning_area_name = self.locator.get_planning_area_name(subzone.planning_area_id)

        return ResolvedAddress(
            resolved_address=address,
            postal=postal,
            latlng={"lat": lat, "lng": lng},
            subzone_id=subzone.id,
            subzone_name=subzone.name,
            planning_area_id=subzone.planning_area_id or None,
            planning_area_name=planning_area_name or None,
            confidence=confidence,
            source_chain=sources + [Source.SUBZONE],
            candidates=[
                c.model_copy(update={"subzone_id": None, "subzone_name": None})
                for c in candidates
            ] if candidates is not None else None,
            raw_query=raw_query,
            normalized_query=normalized_query,
        )

    def _maybe_run_maintenance(self) -> None:
        if self.maintenance_probability > 0 and self.random_fn() < self.maintenance_probability:
            self.cache_manager.evict_expired()


def candidate_cache_key(normalized_query: str, candidate_index: int) -> str:
    """Cache key of a promoted candidate, distinct from the query's own key."""
    return f"{normalized_query}:candidate:{candidate_index}"
