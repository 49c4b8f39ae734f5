from typing import Optional


class TileDownloaderException(Exception):
    """Base exception for tile downloader"""
    pass


class ConfigurationError(TileDownloaderException):
    """Configuration related errors"""
    pass


class ValidationError(TileDownloaderException):
    """Validation related errors"""
    pass


class StorageError(TileDownloaderException):
    """Output directory could not be prepared"""
    pass


class DownloadCancelled(TileDownloaderException):
    """User declined a large download at the confirmation prompt"""
    pass


class DownloadError(TileDownloaderException):
    """Download related errors for a single tile"""

    def __init__(self, message: str, tile_id=None):
        super().__init__(message)
        self.tile_id = tile_id


class ServerError(DownloadError):
    """Tile server answered with a non-200 status"""

    def __init__(self, message: str, tile_id=None, status_code: Optional[int] = None):
        super().__init__(message, tile_id)
        self.status_code = status_code


class ImageProcessingError(DownloadError):
    """Tile payload could not be decoded or re-encoded"""
    pass
