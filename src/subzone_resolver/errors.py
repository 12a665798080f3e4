"""
Exception taxonomy for address resolution.

Only configuration problems escape the resolver. Geocoding and spatial
failures are caught where they happen and degrade to the next strategy,
so callers only ever see a ResolvedAddress or None.
"""

from typing import Optional


class ResolverError(Exception):
    """Base class for resolver errors."""


class ConfigurationError(ResolverError):
    """Configuration is missing or invalid."""


class GeocodingError(ResolverError):
    """A geocoding request did not produce a usable response."""


class OneMapNetworkError(GeocodingError):
    """OneMap returned a non-OK status or the request failed in transport."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OneMapResponseError(GeocodingError):
    """OneMap returned a body that is not valid JSON or not the expected shape."""


class SpatialQueryError(ResolverError):
    """A spatial store query or remote procedure call failed."""
