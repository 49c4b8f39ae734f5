from abc import ABC, abstractmethod
from typing import Dict, Any, Iterable, Optional

from meshtiles.models.tile import TileId, FetchResult, DownloadSummary


class ITileServer(ABC):
    """Interface for tile server implementations"""

    @abstractmethod
    def get_tile_url(self, tile_id: TileId) -> str:
        """Generate tile URL for given tile"""
        pass

    @abstractmethod
    def redact_url(self, url: str) -> str:
        """Return URL safe for logging"""
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Get provider name"""
        pass

    @abstractmethod
    def get_style(self) -> str:
        """Get map style"""
        pass


class ITileDownloader(ABC):
    """Interface for tile downloader implementations"""

    @abstractmethod
    def fetch_tile(self, tile_id: TileId, output_root: str) -> FetchResult:
        """Fetch and store a single tile"""
        pass

    @abstractmethod
    def download_tiles(self, tile_ids: Iterable[TileId], output_root: str,
                       progress: Optional[Any] = None) -> DownloadSummary:
        """Fetch tiles sequentially"""
        pass


class IConfigLoader(ABC):
    """Interface for configuration loading"""

    @abstractmethod
    def load_config(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from file"""
        pass

    @abstractmethod
    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration"""
        pass
