from dataclasses import dataclass
from enum import Enum
from typing import List

from meshtiles.exceptions.tile_downloader_exceptions import ConfigurationError
from meshtiles.interfaces.tile_server import ITileServer
from meshtiles.models.tile import TileId


REDACTED = "[REDACTED]"


class Provider(Enum):
    """Known tile providers with their URL template and key requirement"""

    THUNDERFOREST = (
        "thunderforest",
        "https://tile.thunderforest.com/{style}/{zoom}/{x}/{y}.png?apikey={api_key}",
        True,
    )
    GEOAPIFY = (
        "geoapify",
        "https://maps.geoapify.com/v1/tile/{style}/{zoom}/{x}/{y}.png?apiKey={api_key}",
        True,
    )
    CNIG_ES = (
        "cnig.es",
        "https://tms-ign-base.idee.es/1.0.0/IGNBaseTodo/{zoom}/{x}/{y}.jpeg",
        False,
    )

    def __new__(cls, name: str, url_template: str, requires_api_key: bool):
        obj = object.__new__(cls)
        obj._value_ = name
        obj.url_template = url_template
        obj.requires_api_key = requires_api_key
        return obj

    @property
    def api_key_env_var(self) -> str:
        """Provider specific key variable, e.g. THUNDERFOREST_API_KEY"""
        return self.value.upper().replace('.', '_') + "_API_KEY"

    @classmethod
    def known_names(cls) -> List[str]:
        return [p.value for p in cls]

    @classmethod
    def from_name(cls, name: str) -> "Provider":
        try:
            return cls(name)
        except ValueError:
            known = ", ".join(cls.known_names())
            raise ConfigurationError(f"Provider '{name}' is unknown. Known: '{known}'") from None


@dataclass
class TileServer(ITileServer):
    """A provider bound to a style and API key"""
    provider: Provider
    style: str
    api_key: str = ""

    def get_tile_url(self, tile_id: TileId) -> str:
        """Generate tile URL for given coordinates"""
        return self.provider.url_template.format(
            style=self.style, zoom=tile_id.zoom, x=tile_id.x, y=tile_id.y, api_key=self.api_key
        )

    def redact_url(self, url: str) -> str:
        if self.api_key:
            return url.replace(self.api_key, REDACTED)
        return url

    def get_name(self) -> str:
        """Get provider name"""
        return self.provider.value

    def get_style(self) -> str:
        """Get map style"""
        return self.style


@dataclass(frozen=True)
class ProviderConfig:
    """Map section of the configuration, applies to every tile of a run"""
    provider: Provider
    style: str
    reduce_at_zoom: int


@dataclass(frozen=True)
class DownloadConfig:
    """Environment-derived settings for a run"""
    output_dir: str
    api_key: str = ""
    dry_run: bool = False
    timeout: int = 30
