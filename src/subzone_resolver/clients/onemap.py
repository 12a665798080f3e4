"""
OneMap search API client.

Wraps the OneMap elastic search endpoint and validates its payload into
OneMapResponse at the boundary, so untyped fields never travel further
into the pipeline.
"""

import logging
from typing import Optional

import requests
from pydantic import ValidationError

from ..cache.models import OneMapResponse
from ..errors import OneMapNetworkError, OneMapResponseError

logger = logging.getLogger(__name__)

ONEMAP_SEARCH_URL = "https://www.onemap.gov.sg/api/common/elastic/search"


class OneMapClient:
    """Client for the OneMap address search API."""

    def __init__(
        self,
        base_url: str = ONEMAP_SEARCH_URL,
        timeout: float = 10,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize OneMap client.

        Args:
            base_url: Search endpoint URL
            timeout: Request timeout in seconds
            token: Optional OneMap access token sent as a bearer token
            session: Optional requests session (a new one is created if omitted)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def search(self, search_val: str) -> OneMapResponse:
        """Search OneMap for an address, postal code or building name.

        Args:
            search_val: Text to search for

        Returns:
            Validated OneMapResponse (``is_empty`` when nothing matched)

        Raises:
            OneMapNetworkError: On non-OK HTTP status or transport failure
            OneMapResponseError: If the body is not the expected JSON shape
        """
        params = {
            "searchVal": search_val,
            "returnGeom": "Y",
            "getAddrDetails": "Y",
            "pageNum": 1,
        }

        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise OneMapNetworkError(
                f"OneMap API error for '{search_val}': {status_code} {e}",
                status_code=status_code,
            ) from e
        except requests.RequestException as e:
            raise OneMapNetworkError(f"OneMap request failed for '{search_val}': {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise OneMapResponseError(f"OneMap returned non-JSON body for '{search_val}'") from e

        if not isinstance(data, dict):
            raise OneMapResponseError(f"OneMap returned unexpected payload for '{search_val}'")

        try:
            parsed = OneMapResponse.model_validate(data)
        except ValidationError as e:
            raise OneMapResponseError(f"OneMap response failed validation: {e}") from e

        logger.debug(f"OneMap '{search_val}': found={parsed.found}, rows={len(parsed.results)}")
        return parsed
