import logging
import os
from typing import Any, Iterable, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter

from meshtiles.interfaces.tile_server import ITileDownloader
from meshtiles.models.tile import TileId, FetchResult, DownloadSummary
from meshtiles.models.tile_server import TileServer
from meshtiles.services.image_service import ImageService
from meshtiles.utils.file_utils import FileUtils
from meshtiles.exceptions.tile_downloader_exceptions import DownloadError, ServerError, StorageError

logger = logging.getLogger(__name__)


PNG_CONTENT_TYPE = "image/png"


class TileDownloadService(ITileDownloader):
    """Fetches one tile at a time and stores it under the output root.

    A tile is written at most once: if the target file exists it is
    skipped without contacting the provider. Tiles at or above
    ``reduce_at_zoom`` are recompressed; non-PNG payloads are converted
    to PNG; PNG payloads below the threshold are stored byte-identical.
    """

    def __init__(self, tile_server: TileServer, reduce_at_zoom: int, dry_run: bool = False,
                 timeout: int = 30, session: Optional[requests.Session] = None,
                 image_service: Optional[ImageService] = None):
        self.tile_server = tile_server
        self.reduce_at_zoom = reduce_at_zoom
        self.dry_run = dry_run
        self.timeout = timeout
        self._session = session
        self.image_service = image_service or ImageService()

    def create_session(self) -> requests.Session:
        """Create session for downloads; failures are never retried"""
        session = requests.Session()

        adapter = HTTPAdapter(
            max_retries=0,
            pool_connections=1,
            pool_maxsize=1
        )

        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = self.create_session()
        return self._session

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def get_tile_path(self, tile_id: TileId, output_root: str) -> str:
        return FileUtils.get_tile_path(output_root, self.tile_server.get_name(),
                                       self.tile_server.get_style(), tile_id)

    def fetch_tile(self, tile_id: TileId, output_root: str) -> FetchResult:
        """Fetch a single tile.

        Raises StorageError when the tile directory cannot be created; every
        other problem is returned as a failed FetchResult.
        """
        reducing = tile_id.zoom >= self.reduce_at_zoom
        url = self.tile_server.get_tile_url(tile_id)
        redacted_url = self.tile_server.redact_url(url)
        tile_path = self.get_tile_path(tile_id, output_root)

        try:
            FileUtils.ensure_directory_exists(os.path.dirname(tile_path))
        except OSError as e:
            raise StorageError(f"failed to create directory for tile {tile_id}: {e}") from e

        if FileUtils.file_exists(tile_path):
            logger.debug("[%s] file already exists. Skipping... %s", tile_path, redacted_url)
            return FetchResult.skipped(tile_id, "exists")

        if self.dry_run:
            logger.info("DEBUG IS ACTIVE: not obtaining tile: %s (Would reduce: %s)", redacted_url, reducing)
            return FetchResult.skipped(tile_id, "dry-run")

        try:
            content, content_type = self._download(tile_id, url)
            self._store(tile_id, content, content_type, tile_path, reducing, redacted_url)
        except ServerError as e:
            logger.error("Error downloading tile %s: %s", tile_id, e)
            return FetchResult.failure(tile_id, str(e), status_code=e.status_code)
        except DownloadError as e:
            logger.error("Error downloading tile %s: %s", tile_id, e)
            return FetchResult.failure(tile_id, str(e))

        return FetchResult.success(tile_id)

    def _download(self, tile_id: TileId, url: str) -> Tuple[bytes, str]:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            # transport errors quote the URL, key included
            reason = self.tile_server.redact_url(str(e))
            raise DownloadError(f"failed to download tile {tile_id}: {reason}", tile_id) from e

        if response.status_code != 200:
            raise ServerError(
                f"failed to download tile {tile_id}: {response.status_code} {response.reason}",
                tile_id, status_code=response.status_code
            )

        content_type = response.headers.get("Content-Type", "")
        if not content_type.startswith("image/"):
            raise ServerError(
                f"failed to parse tile {tile_id}: {response.status_code}: not an image ({content_type or 'no content type'})",
                tile_id, status_code=response.status_code
            )

        return response.content, content_type

    def _store(self, tile_id: TileId, content: bytes, content_type: str, tile_path: str,
               reducing: bool, redacted_url: str) -> None:
        if reducing:
            logger.info("Reducing tile from %s → %s", redacted_url, tile_path)
            content = self.image_service.to_compressed_png(content)
        elif content_type.split(";")[0].strip().lower() != PNG_CONTENT_TYPE:
            logger.info("Saving converted tile %s → %s", redacted_url, tile_path)
            content = self.image_service.to_compressed_png(content)
        else:
            logger.info("Saving not altered tile %s → %s", redacted_url, tile_path)

        try:
            FileUtils.write_bytes(tile_path, content)
        except OSError as e:
            raise DownloadError(f"failed to write tile {tile_id} to {tile_path}: {e}", tile_id) from e

    def download_tiles(self, tile_ids: Iterable[TileId], output_root: str,
                       progress: Optional[Any] = None) -> DownloadSummary:
        """Fetch tiles in order; ``progress`` is anything with ``update(n)``"""
        summary = DownloadSummary()
        for tile_id in tile_ids:
            summary.record(self.fetch_tile(tile_id, output_root))
            if progress is not None:
                progress.update(1)
        return summary
