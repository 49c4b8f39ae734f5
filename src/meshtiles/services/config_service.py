import logging
import os
from typing import Dict, Any, List, Mapping, Optional

import yaml

from meshtiles.interfaces.tile_server import IConfigLoader
from meshtiles.models.region import Coerced, Zone
from meshtiles.models.tile_server import Provider, ProviderConfig, DownloadConfig
from meshtiles.exceptions.tile_downloader_exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)


DEFAULT_PROVIDER = Provider.THUNDERFOREST.value
DEFAULT_STYLE = "atlas"
DEFAULT_REDUCE_LEVEL = 12
NEVER_REDUCE_LEVEL = 100
MIN_REDUCE_LEVEL = 1
MAX_REDUCE_LEVEL = 16
DEFAULT_ZOOM_IN = 8
DEFAULT_ZOOM_OUT = 1
DEFAULT_TIMEOUT = 30
GENERIC_API_KEY_VAR = "API_KEY"


class ConfigService(IConfigLoader):
    """Service for loading and validating configuration"""

    def read_config(self, config_path: str) -> Dict[str, Any]:
        """Read the raw YAML mapping without validating it"""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Config file {config_path} not found!")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Error reading {config_path}: {e}") from e

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
        return config

    def load_config(self, config_path: str, require_zones: bool = True) -> Dict[str, Any]:
        """Load configuration from YAML file"""
        return self.prepare_config(self.read_config(config_path), require_zones=require_zones)

    def prepare_config(self, config: Dict[str, Any], require_zones: bool = True) -> Dict[str, Any]:
        """Validate a raw mapping and attach typed zones and provider settings.

        With ``require_zones=False`` (point mode) only the map section is
        used; zones are neither validated nor built.
        """
        if not require_zones:
            config['zones'] = {}
        self.validate_config(config, require_zones=require_zones)
        return self._process_config(config)

    def default_config(self) -> Dict[str, Any]:
        """Configuration used when point mode runs without a config file"""
        return self._process_config({'zones': {}, 'map': {}})

    def validate_config(self, config: Dict[str, Any], require_zones: bool = True) -> bool:
        """Validate configuration structure, provider and region strings"""
        logger.info("Analysing configuration.")

        zones = config.get('zones') or {}
        if not isinstance(zones, dict):
            raise ConfigurationError("zones must be a mapping of zone name to zone")
        if require_zones and not zones:
            raise ConfigurationError("No zones configured")

        map_config = config.get('map') or {}
        if not isinstance(map_config, dict):
            raise ConfigurationError("map must be a mapping")
        Provider.from_name(map_config.get('provider') or DEFAULT_PROVIDER)

        for name, zone in zones.items():
            self._build_zone(name, zone)

        return True

    def _process_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Attach typed zone and provider objects with defaults applied"""
        zones = config.get('zones') or {}
        if zones:
            logger.info("Found %d zones", len(zones))
        config['zone_defs'] = {name: self._build_zone(name, zone) for name, zone in zones.items()}
        config['provider_config'] = self._build_provider_config(config.get('map') or {})
        return config

    def _build_zone(self, name: str, zone_data: Any) -> Zone:
        zone_data = zone_data or {}
        if not isinstance(zone_data, dict):
            raise ConfigurationError(f"Zone [{name}] must be a mapping")

        regions = zone_data.get('regions') or []
        if not isinstance(regions, list):
            raise ConfigurationError(f"Zone [{name}] regions must be a list")

        zoom_data = zone_data.get('zoom') or {}
        if not isinstance(zoom_data, dict):
            raise ConfigurationError(f"Zone [{name}] zoom must be a mapping with 'in' and 'out'")
        try:
            zoom_in = self.coerce_zoom(zoom_data.get('in'), DEFAULT_ZOOM_IN)
            zoom_out = self.coerce_zoom(zoom_data.get('out'), DEFAULT_ZOOM_OUT)
        except ConfigurationError as e:
            raise ConfigurationError(f"Zone [{name}]: {e}") from e
        if zoom_in.defaulted:
            logger.debug("Setting default zoom in level for [%s] to %d", name, zoom_in.value)
        if zoom_out.defaulted:
            logger.debug("Setting default zoom out level for [%s] to %d", name, zoom_out.value)
        if zoom_out.value > zoom_in.value:
            raise ConfigurationError(
                f"Zone [{name}] zoom out ({zoom_out.value}) is greater than zoom in ({zoom_in.value})"
            )

        zone = Zone(name=name, regions=[str(r) for r in regions],
                    zoom_in=zoom_in.value, zoom_out=zoom_out.value)
        try:
            zone.bounding_boxes()
        except ValidationError as e:
            raise ConfigurationError(f"Zone [{name}]: {e}") from e
        return zone

    def _build_provider_config(self, map_config: Dict[str, Any]) -> ProviderConfig:
        provider_name = map_config.get('provider') or DEFAULT_PROVIDER
        if not map_config.get('provider'):
            logger.info("Setting default provider to %s", DEFAULT_PROVIDER)

        style = map_config.get('style') or DEFAULT_STYLE
        if not map_config.get('style'):
            logger.info("Setting default style to %s", DEFAULT_STYLE)

        reduce_level = self.coerce_reduce_level(map_config.get('reduce'))
        if reduce_level.defaulted:
            logger.info("Setting reduce level to %d", reduce_level.value)

        return ProviderConfig(
            provider=Provider.from_name(provider_name),
            style=str(style),
            reduce_at_zoom=reduce_level.value
        )

    @staticmethod
    def _to_int(value: Any, what: str) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{what} must be an integer, got {value!r}") from e

    @staticmethod
    def coerce_zoom(value: Any, default: int) -> Coerced:
        """Absent or zero zoom falls back to default; negative zoom is an error"""
        if not value:
            return Coerced(default, defaulted=True)
        zoom = ConfigService._to_int(value, "zoom")
        if zoom < 0:
            raise ConfigurationError(f"zoom must be >= 0, got {zoom}")
        return Coerced(zoom)

    @staticmethod
    def coerce_reduce_level(value: Any) -> Coerced:
        """Absent or zero -> 12; outside [1, 16] -> 100 (never reduce)"""
        if not value:
            return Coerced(DEFAULT_REDUCE_LEVEL, defaulted=True)
        level = ConfigService._to_int(value, "reduce")
        if level < MIN_REDUCE_LEVEL or level > MAX_REDUCE_LEVEL:
            return Coerced(NEVER_REDUCE_LEVEL, defaulted=True)
        return Coerced(level)

    def get_zones(self, config: Dict[str, Any]) -> List[Zone]:
        """Get configured zones in file order"""
        return list(config.get('zone_defs', {}).values())

    def get_provider_config(self, config: Dict[str, Any]) -> ProviderConfig:
        return config['provider_config']

    @staticmethod
    def is_debug_mode(environ: Mapping[str, str]) -> bool:
        debug = environ.get('DEBUG', '')
        return debug != '' and debug.lower() != 'false'

    @staticmethod
    def default_output_dir() -> str:
        return os.path.join(os.path.expanduser('~'), 'Desktop', 'maps')

    @staticmethod
    def resolve_api_key(provider: Provider, environ: Mapping[str, str]) -> str:
        """Provider specific key, falling back to API_KEY.

        Providers that require a key refuse to run without one.
        """
        api_key = environ.get(provider.api_key_env_var) or environ.get(GENERIC_API_KEY_VAR) or ''
        if not api_key and provider.requires_api_key:
            raise ConfigurationError(
                f"Neither {GENERIC_API_KEY_VAR} env var or {provider.api_key_env_var} found. "
                "If your provider doesn't need an API Key, set the env var with any content."
            )
        return api_key

    def load_download_config(self, config: Dict[str, Any], environ: Mapping[str, str],
                             dry_run: Optional[bool] = None) -> DownloadConfig:
        """Collect environment-derived settings for the configured provider"""
        provider = self.get_provider_config(config).provider
        download_section = config.get('download') or {}
        timeout = self._to_int(download_section.get('timeout', DEFAULT_TIMEOUT), "download.timeout")

        return DownloadConfig(
            output_dir=environ.get('DOWNLOAD_DIRECTORY') or self.default_output_dir(),
            api_key=self.resolve_api_key(provider, environ),
            dry_run=self.is_debug_mode(environ) if dry_run is None else dry_run,
            timeout=timeout
        )
