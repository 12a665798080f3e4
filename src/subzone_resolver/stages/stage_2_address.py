"""
Stage 2: Free-text address geocoding.

Searches OneMap with the whole query, drops matches outside Singapore and
ranks the rest by a simple similarity score against the street part of the
query. The best match becomes the result; up to four runners-up are kept as
candidates the user can pick from.
"""

import logging
from typing import List, Optional, Tuple

from ..cache.models import AddressCandidate, GeocodeResult, LatLng, OneMapResult, Source
from ..clients.onemap import OneMapClient
from ..core.classifier import clean_street_name, normalize_input
from .base_stage import BaseStage

logger = logging.getLogger(__name__)

# (min_lat, max_lat, min_lng, max_lng)
SINGAPORE_BOUNDS = (1.2, 1.5, 103.6, 104.0)

MAX_SCORED_RESULTS = 5

EXACT_MATCH_SCORE = 100
ROAD_MATCH_SCORE = 80
PARTIAL_MATCH_WEIGHT = 50


def within_singapore(lat: float, lng: float) -> bool:
    min_lat, max_lat, min_lng, max_lng = SINGAPORE_BOUNDS
    return min_lat <= lat <= max_lat and min_lng <= lng <= max_lng


def _contains_either_way(query: str, text: str) -> bool:
    if not text:
        return False
    return query in text or text in query


def score_match(cleaned_query: str, address: str, road_name: str) -> float:
    """Score how well a OneMap row matches the query.

    Args:
        cleaned_query: Query without its block number
        address: Full address of the row
        road_name: Road name of the row

    Returns:
        100 for containment against the address, 80 for containment against
        the road name, otherwise the share of query words that partially
        match an address word, times 50
    """
    lower_query = cleaned_query.lower()
    lower_address = address.lower()
    lower_road = road_name.lower()

    if _contains_either_way(lower_query, lower_address):
        return EXACT_MATCH_SCORE
    if _contains_either_way(lower_query, lower_road):
        return ROAD_MATCH_SCORE

    query_words = lower_query.split()
    if not query_words:
        return 0.0
    address_words = lower_address.split()
    matching = [
        qw for qw in query_words
        if any(aw in qw or qw in aw for aw in address_words)
    ]
    return len(matching) / len(query_words) * PARTIAL_MATCH_WEIGHT


class AddressStage(BaseStage):
    """Stage 2: Geocode the full query text through OneMap."""

    def __init__(self, client: OneMapClient):
        super().__init__(stage_name="stage_2_address")
        self.client = client

    def geocode(self, query: str) -> Optional[GeocodeResult]:
        return self.search_address(query)

    def search_address(self, text: str) -> Optional[GeocodeResult]:
        """Search OneMap and rank results against the text.

        Args:
            text: Address, street or building text

        Returns:
            GeocodeResult with ``source=[onemap]``, or None if nothing usable matched

        Raises:
            GeocodingError: If OneMap fails
        """
        normalized = normalize_input(text)
        cleaned = clean_street_name(normalized)

        response = self.client.search(normalized)
        if response.is_empty:
            logger.debug(f"[{self.stage_name}] No OneMap match for '{normalized}'")
            return None

        located: List[Tuple[OneMapResult, float, float]] = []
        for row in response.results:
            coordinates = row.coordinates()
            if coordinates is None or not within_singapore(*coordinates):
                continue
            located.append((row, coordinates[0], coordinates[1]))

        if not located:
            logger.debug(f"[{self.stage_name}] All matches for '{normalized}' outside Singapore")
            return None

        scored = [
            AddressCandidate(
                address=row.display_address,
                postal=row.postal_code,
                latlng=LatLng(lat=lat, lng=lng),
                score=score_match(cleaned, row.display_address, row.ROAD_NAME),
            )
            for row, lat, lng in located
        ]
        # sorted() is stable, so equal scores keep OneMap's ranking
        scored = sorted(scored, key=lambda c: c.score, reverse=True)[:MAX_SCORED_RESULTS]

        top = scored[0]
        logger.debug(
            f"[{self.stage_name}] Best match for '{normalized}': {top.address} "
            f"(score {top.score:.0f}, {len(scored) - 1} alternates)"
        )
        return GeocodeResult(
            lat=top.latlng.lat,
            lng=top.latlng.lng,
            address=top.address,
            postal=top.postal,
            candidates=scored[1:],
            source=[Source.ONEMAP],
        )
