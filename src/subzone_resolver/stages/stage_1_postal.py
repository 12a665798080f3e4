"""
Stage 1: Postal code geocoding.

Singapore postal codes identify a single building, so any six-digit run in
the query is looked up on its own before the full text is tried.
"""

import logging
from typing import Optional

from ..cache.models import GeocodeResult, Source
from ..clients.onemap import OneMapClient
from ..core.classifier import extract_postal_code
from .base_stage import BaseStage

logger = logging.getLogger(__name__)


class PostalStage(BaseStage):
    """Stage 1: Geocode an embedded postal code through OneMap."""

    def __init__(self, client: OneMapClient):
        super().__init__(stage_name="stage_1_postal")
        self.client = client

    def should_skip(self, query: str) -> tuple[bool, Optional[str]]:
        if extract_postal_code(query) is None:
            return True, "No postal code in query"
        return False, None

    def geocode(self, query: str) -> Optional[GeocodeResult]:
        postal = extract_postal_code(query)
        if postal is None:
            return None

        response = self.client.search(postal)
        if response.is_empty:
            logger.debug(f"[{self.stage_name}] No OneMap match for postal code {postal}")
            return None

        first = response.results[0]
        coordinates = first.coordinates()
        if coordinates is None:
            logger.warning(
                f"[{self.stage_name}] Non-numeric coordinates for postal code {postal}: "
                f"{first.LATITUDE!r}, {first.LONGITUDE!r}"
            )
            return None

        lat, lng = coordinates
        return GeocodeResult(
            lat=lat,
            lng=lng,
            address=first.display_address,
            postal=postal,
            source=[Source.POSTAL, Source.ONEMAP],
        )
