"""
Subzone resolver: turns free-form Singapore location input (postal codes,
street addresses, development names) into the URA subzone containing it.
"""

from typing import Optional

from .cache.models import (
    AddressCandidate,
    Confidence,
    InputType,
    LatLng,
    ResolvedAddress,
    Source,
    SubzoneData,
)
from .config_manager import ConfigManager, ResolverConfig
from .errors import ConfigurationError, ResolverError
from .factory import build_resolver, get_default_resolver, set_default_resolver
from .resolver import AddressResolver

__version__ = "1.0.0"


def resolve_address(query: str) -> Optional[ResolvedAddress]:
    """Resolve a query with the default resolver."""
    return get_default_resolver().resolve(query)


def resolve_address_candidates(query: str, candidate_index: int) -> Optional[ResolvedAddress]:
    """Resolve one alternate candidate of a query with the default resolver."""
    return get_default_resolver().resolve_candidate(query, candidate_index)


__all__ = [
    "AddressCandidate",
    "AddressResolver",
    "Confidence",
    "ConfigManager",
    "ConfigurationError",
    "InputType",
    "LatLng",
    "ResolvedAddress",
    "ResolverConfig",
    "ResolverError",
    "Source",
    "SubzoneData",
    "build_resolver",
    "get_default_resolver",
    "resolve_address",
    "resolve_address_candidates",
    "set_default_resolver",
]
