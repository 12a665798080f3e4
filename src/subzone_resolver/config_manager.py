"""
Configuration manager for resolver settings.

Loads resolver configuration from YAML files (or from the environment
alone), validates settings, and provides environment variable substitution.
"""

import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .clients.onemap import ONEMAP_SEARCH_URL
from .errors import ConfigurationError

SPATIAL_BACKENDS = ("supabase", "geojson")
CACHE_BACKENDS = ("memory", "sqlite")


@dataclass
class OneMapSettings:
    base_url: str = ONEMAP_SEARCH_URL
    timeout: float = 10
    token: Optional[str] = None


@dataclass
class SpatialSettings:
    backend: str = "supabase"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    timeout: float = 10
    subzones_path: Optional[Path] = None
    planning_areas_path: Optional[Path] = None


@dataclass
class CacheSettings:
    backend: str = "memory"
    db_path: Path = Path("outputs/resolver_cache.db")
    query_ttl_days: float = 7
    project_ttl_days: float = 30
    maintenance_probability: float = 0.0


@dataclass
class ResolverConfig:
    """Validated resolver configuration."""
    name: str = "subzone_resolver"
    onemap: OneMapSettings = field(default_factory=OneMapSettings)
    spatial: SpatialSettings = field(default_factory=SpatialSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, with secrets masked."""
        data = asdict(self)
        if data["spatial"].get("supabase_key"):
            data["spatial"]["supabase_key"] = "***"
        if data["onemap"].get("token"):
            data["onemap"]["token"] = "***"
        for section in ("spatial", "cache"):
            for key, value in data[section].items():
                if isinstance(value, Path):
                    data[section][key] = str(value)
        return data


class ConfigManager:
    """Manages resolver configuration."""

    CONFIG_ENV_VAR = "SUBZONE_RESOLVER_CONFIG"

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration YAML file (optional)
        """
        self.config_path = config_path
        self._config: Optional[Dict[str, Any]] = None

    def load(self, config_path: Optional[Path] = None) -> ResolverConfig:
        """Load and validate configuration from YAML file.

        Args:
            config_path: Path to configuration file (overrides init path)

        Returns:
            ResolverConfig with validated settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If configuration is invalid
        """
        path = config_path or self.config_path
        if path is None:
            raise ConfigurationError("No configuration path provided")

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {path}")

        config = self._substitute_env_vars(config)
        self._validate_config(config)
        self._config = config

        return self._create_resolver_config(config)

    def from_environment(self) -> ResolverConfig:
        """Build configuration from environment variables.

        Uses the YAML file named by SUBZONE_RESOLVER_CONFIG if set;
        otherwise reads Supabase and OneMap credentials directly.

        Returns:
            ResolverConfig
        """
        env_path = os.environ.get(self.CONFIG_ENV_VAR)
        if env_path:
            return self.load(Path(env_path))

        config = {
            "name": "subzone_resolver",
            "onemap": {"token": os.environ.get("ONEMAP_TOKEN") or None},
            "spatial": {
                "backend": "supabase",
                "supabase_url": (
                    os.environ.get("SUPABASE_URL")
                    or os.environ.get("NEXT_PUBLIC_SUPABASE_URL")
                ),
                "supabase_key": (
                    os.environ.get("SUPABASE_ANON_KEY")
                    or os.environ.get("NEXT_PUBLIC_SUPABASE_ANON_KEY")
                ),
            },
            "cache": {"backend": "memory"},
        }
        self._validate_config(config)
        self._config = config
        return self._create_resolver_config(config)

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute environment variables in configuration.

        Supports syntax: ${VAR_NAME} or ${VAR_NAME:default_value}
        """
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_var_string(config)
        else:
            return config

    def _substitute_env_var_string(self, value: str) -> str:
        pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replacer, value)

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate configuration structure and required fields.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        for section in ("onemap", "spatial", "cache"):
            if section in config and not isinstance(config[section], dict):
                raise ConfigurationError(f"Section '{section}' must be a mapping")

        spatial = config.get("spatial") or {}
        backend = spatial.get("backend", "supabase")
        if backend not in SPATIAL_BACKENDS:
            raise ConfigurationError(
                f"Unknown spatial backend '{backend}' (expected one of {SPATIAL_BACKENDS})"
            )

        if backend == "supabase":
            if not spatial.get("supabase_url") or not spatial.get("supabase_key"):
                raise ConfigurationError(
                    "Supabase spatial backend requires supabase_url and supabase_key"
                )
        elif not spatial.get("subzones_path"):
            raise ConfigurationError("GeoJSON spatial backend requires subzones_path")

        cache = config.get("cache") or {}
        cache_backend = cache.get("backend", "memory")
        if cache_backend not in CACHE_BACKENDS:
            raise ConfigurationError(
                f"Unknown cache backend '{cache_backend}' (expected one of {CACHE_BACKENDS})"
            )

        probability = float(cache.get("maintenance_probability", 0.0))
        if not 0.0 <= probability <= 1.0:
            raise ConfigurationError("cache.maintenance_probability must be between 0 and 1")

        for key in ("query_ttl_days", "project_ttl_days"):
            if key in cache and float(cache[key]) <= 0:
                raise ConfigurationError(f"cache.{key} must be positive")

    def _create_resolver_config(self, config: Dict[str, Any]) -> ResolverConfig:
        onemap = config.get("onemap") or {}
        spatial = config.get("spatial") or {}
        cache = config.get("cache") or {}

        def optional_path(value: Optional[str]) -> Optional[Path]:
            return Path(value).expanduser() if value else None

        return ResolverConfig(
            name=config.get("name", "subzone_resolver"),
            onemap=OneMapSettings(
                base_url=onemap.get("base_url") or ONEMAP_SEARCH_URL,
                timeout=float(onemap.get("timeout", 10)),
                token=onemap.get("token") or None,
            ),
            spatial=SpatialSettings(
                backend=spatial.get("backend", "supabase"),
                supabase_url=spatial.get("supabase_url") or None,
                supabase_key=spatial.get("supabase_key") or None,
                timeout=float(spatial.get("timeout", 10)),
                subzones_path=optional_path(spatial.get("subzones_path")),
                planning_areas_path=optional_path(spatial.get("planning_areas_path")),
            ),
            cache=CacheSettings(
                backend=cache.get("backend", "memory"),
                db_path=Path(cache.get("db_path", "outputs/resolver_cache.db")).expanduser(),
                query_ttl_days=float(cache.get("query_ttl_days", 7)),
                project_ttl_days=float(cache.get("project_ttl_days", 30)),
                maintenance_probability=float(cache.get("maintenance_probability", 0.0)),
            ),
        )

    def save_example_config(self, output_path: Path) -> None:
        """Save an example configuration file.

        Args:
            output_path: Path where to save example config
        """
        example_config = {
            "name": "subzone_resolver",
            "onemap": {
                "base_url": ONEMAP_SEARCH_URL,
                "timeout": 10,
                "token": "${ONEMAP_TOKEN:}",
            },
            "spatial": {
                "backend": "supabase",
                "supabase_url": "${SUPABASE_URL}",
                "supabase_key": "${SUPABASE_ANON_KEY}",
                "timeout": 10,
            },
            "cache": {
                "backend": "memory",
                "db_path": "outputs/resolver_cache.db",
                "query_ttl_days": 7,
                "project_ttl_days": 30,
                "maintenance_probability": 0.0,
            },
        }

        with open(output_path, "w") as f:
            yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)
