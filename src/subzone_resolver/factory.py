"""
Builds a ready-to-use AddressResolver from a ResolverConfig.
"""

import logging
from typing import Optional

from .cache.cache_manager import DAY_MS, CacheManager, TTLCache
from .clients.onemap import OneMapClient
from .config_manager import ConfigManager, ResolverConfig
from .geocoder import Geocoder
from .resolver import AddressResolver
from .spatial.base import SpatialStore
from .spatial.locator import SubzoneLocator
from .spatial.supabase_store import SupabaseSpatialStore

logger = logging.getLogger(__name__)

_default_resolver: Optional[AddressResolver] = None


def build_spatial_store(config: ResolverConfig) -> SpatialStore:
    spatial = config.spatial
    if spatial.backend == "geojson":
        # geopandas is only loaded when the local backend is selected
        from .spatial.geojson_store import GeoJSONSpatialStore

        return GeoJSONSpatialStore(spatial.subzones_path, spatial.planning_areas_path)

    return SupabaseSpatialStore(
        spatial.supabase_url,
        spatial.supabase_key,
        timeout=spatial.timeout,
    )


def build_cache_manager(config: ResolverConfig) -> CacheManager:
    cache = config.cache
    query_ttl_ms = cache.query_ttl_days * DAY_MS
    project_ttl_ms = cache.project_ttl_days * DAY_MS

    if cache.backend == "sqlite":
        logger.info(f"Using SQLite cache at {cache.db_path}")
        return CacheManager.with_sqlite(cache.db_path, query_ttl_ms, project_ttl_ms)

    return CacheManager(
        query_cache=TTLCache("query_cache", query_ttl_ms),
        project_cache=TTLCache("project_cache", project_ttl_ms),
    )


def build_resolver(config: ResolverConfig) -> AddressResolver:
    """Wire clients, stores and caches into a resolver.

    Args:
        config: Validated configuration

    Returns:
        AddressResolver
    """
    client = OneMapClient(
        base_url=config.onemap.base_url,
        timeout=config.onemap.timeout,
        token=config.onemap.token,
    )
    cache_manager = build_cache_manager(config)
    locator = SubzoneLocator(build_spatial_store(config))

    logger.debug(f"Built resolver '{config.name}' with {config.spatial.backend} spatial backend")

    return AddressResolver(
        geocoder=Geocoder.default(client, cache_manager),
        locator=locator,
        cache_manager=cache_manager,
        maintenance_probability=config.cache.maintenance_probability,
    )


def get_default_resolver() -> AddressResolver:
    """Return the process-wide resolver, building it from the environment once."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = build_resolver(ConfigManager().from_environment())
    return _default_resolver


def set_default_resolver(resolver: Optional[AddressResolver]) -> None:
    """Replace (or with None, reset) the process-wide resolver."""
    global _default_resolver
    _default_resolver = resolver
