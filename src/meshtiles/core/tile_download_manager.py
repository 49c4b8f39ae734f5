import argparse
import logging
import math
import os
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from tqdm import tqdm

from meshtiles.interfaces.tile_server import ITileDownloader
from meshtiles.infrastructure.logging import LoggingManager
from meshtiles.models.region import PointRadiusQuery, Zone
from meshtiles.models.tile import DownloadSummary
from meshtiles.models.tile_server import DownloadConfig, Provider, TileServer
from meshtiles.services.config_service import ConfigService
from meshtiles.services.point_radius_service import PointRadiusService
from meshtiles.services.region_expander import RegionExpander
from meshtiles.services.tile_download_service import TileDownloadService
from meshtiles.utils.file_utils import FileUtils
from meshtiles.exceptions.tile_downloader_exceptions import (
    ConfigurationError, DownloadCancelled, StorageError, ValidationError
)

logger = logging.getLogger(__name__)


SIZE_CONFIRMATION_THRESHOLD = 100 * 1024 * 1024

ConfirmCallback = Callable[[int], bool]


def prompt_confirmation(estimated_bytes: int) -> bool:
    """Ask on stdin whether to continue with a large download"""
    try:
        answer = input(
            f"\nWarning: The estimated download size is {FileUtils.format_size(estimated_bytes)}. Continue? (y/n): "
        )
    except EOFError:
        return False
    return answer.strip().lower() in ('y', 'yes')


def always_confirm(estimated_bytes: int) -> bool:
    return True


class TileDownloadManager:
    """Main manager class for tile downloading operations"""

    def __init__(self, config: Dict[str, Any], download_config: DownloadConfig,
                 confirm: Optional[ConfirmCallback] = None,
                 download_service: Optional[ITileDownloader] = None):
        self.config_service = ConfigService()
        self.config = config
        self.download_config = download_config
        self.provider_config = self.config_service.get_provider_config(config)
        self.confirm = confirm or prompt_confirmation
        self.expander = RegionExpander()

        if download_service is None:
            tile_server = TileServer(
                provider=self.provider_config.provider,
                style=self.provider_config.style,
                api_key=download_config.api_key
            )
            download_service = TileDownloadService(
                tile_server,
                reduce_at_zoom=self.provider_config.reduce_at_zoom,
                dry_run=download_config.dry_run,
                timeout=download_config.timeout
            )
        self.download_service = download_service

    @staticmethod
    def list_zones(zones: List[Zone]) -> None:
        """List configured zones"""
        print("Configured zones:")
        for zone in zones:
            print(f"  {zone.name}: zoom {zone.zoom_out}-{zone.zoom_in}, {len(zone.regions)} region(s)")

    @staticmethod
    def list_providers() -> None:
        """List known tile providers"""
        print("Known providers:")
        for provider in Provider:
            key_note = f"key: {provider.api_key_env_var} or API_KEY" if provider.requires_api_key else "no key required"
            print(f"  {provider.value} ({key_note})")

    def obtain_tiles(self, regions: Sequence[str], zoom_levels: Sequence[int],
                     output_root: str) -> DownloadSummary:
        """Estimate, confirm and fetch every tile of regions over zoom_levels.

        Raises DownloadCancelled when the estimate is above the threshold
        and the confirmation policy declines.
        """
        expansion = self.expander.expand(regions, zoom_levels)

        for zoom, zoom_size in sorted(expansion.estimated_bytes_by_zoom().items()):
            logger.info("Zoom level %d: %d tiles, estimated %s",
                        zoom, expansion.count_by_zoom[zoom], FileUtils.format_size(zoom_size))
        logger.info("Total tiles: %d, Estimated download size: %s",
                    expansion.total_tiles, FileUtils.format_size(expansion.estimated_bytes))

        if expansion.estimated_bytes > SIZE_CONFIRMATION_THRESHOLD:
            if not self.confirm(expansion.estimated_bytes):
                raise DownloadCancelled("download cancelled by user")

        with tqdm(total=expansion.total_tiles, desc="Downloading tiles", unit="tile") as progress:
            summary = self.download_service.download_tiles(expansion.tile_ids, output_root, progress=progress)

        logger.info("Downloaded: %d, skipped: %d, failed: %d",
                    summary.downloaded, summary.skipped, summary.failed)
        return summary

    def run(self, point_query: Optional[PointRadiusQuery] = None) -> bool:
        """Run in point-radius mode when a query is given, zone mode otherwise"""
        try:
            if point_query is not None:
                return self.run_point_radius(point_query)
            return self.run_zones()
        finally:
            close = getattr(self.download_service, 'close', None)
            if close is not None:
                close()

    def run_zones(self) -> bool:
        start_time = time.time()
        success = True
        total = DownloadSummary()
        zones = self.config_service.get_zones(self.config)

        for zone in zones:
            logger.info("Obtaining zone [%s] [zoom: %d → %d] regions: %s",
                        zone.name, zone.zoom_out, zone.zoom_in, zone.regions)
            try:
                summary = self.obtain_tiles(zone.regions, zone.zoom_levels(), self.download_config.output_dir)
            except DownloadCancelled:
                logger.info("Download cancelled by user for zone %s", zone.name)
                continue
            except StorageError as e:
                logger.error("Error obtaining tiles for zone %s: %s", zone.name, e)
                success = False
                continue

            total.merge(summary)
            logger.info("Finished with zone %s", zone.name)

        logger.info("Total download time: %ds", round(time.time() - start_time))
        logger.info("Finished processing zones: %s", ", ".join(str(z.name) for z in zones))
        self._log_failures(total)
        return success

    def run_point_radius(self, query: PointRadiusQuery) -> bool:
        start_time = time.time()

        bbox = PointRadiusService.bounding_box(query)
        zoom_levels = PointRadiusService.zoom_levels_for_detail(query.detail_level)

        logger.info("Point-radius mode: center (%.6f, %.6f), radius %.2f km",
                    query.center_lat, query.center_lon, query.radius_km)
        logger.info("Bounding box: %s", bbox.to_region_string())
        logger.info("Detail level %d maps to zoom levels %s", query.detail_level, zoom_levels)

        point_output_dir = os.path.join(self.download_config.output_dir, PointRadiusService.folder_name(query))
        try:
            FileUtils.ensure_directory_exists(point_output_dir)
        except OSError as e:
            logger.error("Error creating output directory for point: %s", e)
            return False

        try:
            PointRadiusService.write_metadata(query, bbox, zoom_levels, point_output_dir)
        except OSError as e:
            logger.warning("Error writing metadata: %s", e)

        try:
            summary = self.obtain_tiles([bbox.to_region_string()], zoom_levels, point_output_dir)
        except DownloadCancelled:
            logger.info("Download cancelled by user")
            return True
        except StorageError as e:
            logger.error("Error obtaining tiles: %s", e)
            return False

        logger.info("Total download time: %ds", round(time.time() - start_time))
        self._log_failures(summary)
        return True

    @staticmethod
    def _log_failures(summary: DownloadSummary) -> None:
        if summary.failed:
            logger.warning("%d tile(s) failed:", summary.failed)
            for error in summary.errors:
                logger.warning("  %s", error)

    @staticmethod
    def build_argument_parser() -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description=(
                'Download slippy-map raster tiles for configured zones or for a point and radius.\n'
                '- Tiles already on disk are skipped; set DEBUG=true for a dry run.'
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=(
                'Examples:\n\n'
                '1) Download every zone in config.yaml:\n'
                '   meshtiles\n\n'
                '2) Point-radius mode, 25 km around Madrid at detail level 3:\n'
                '   meshtiles --point --lat 40.4168 --long -3.7038 --radius 25 --detail 3\n\n'
                'Environment:\n'
                '- DOWNLOAD_DIRECTORY  output root (default ~/Desktop/maps)\n'
                '- <PROVIDER>_API_KEY or API_KEY  provider key (cnig.es needs none)\n'
                '- DEBUG  any value other than "false" enables dry-run mode\n\n'
                'Output directory layout: <root>/<provider>/<style>/<z>/<x>/<y>.png'
            )
        )
        parser.add_argument('--config', default='config.yaml', help='YAML configuration file (default: config.yaml)')
        parser.add_argument('--point', action='store_true', help='Enable point-radius mode')
        parser.add_argument('--lat', type=float, default=0.0, help='Center latitude for point-radius mode')
        parser.add_argument('--long', type=float, default=0.0, help='Center longitude for point-radius mode')
        parser.add_argument('--radius', type=float, default=0.0, help='Radius in kilometers for point-radius mode')
        parser.add_argument('--detail', type=int, default=2, help='Detail level (1-4) for point-radius mode (default: 2)')
        parser.add_argument('--yes', action='store_true', help='Do not ask for confirmation on large downloads')
        parser.add_argument('--dry-run', action='store_true', default=None,
                            help='Log what would be fetched without downloading (same as DEBUG=true)')
        parser.add_argument('--list-zones', action='store_true', help='List configured zones and exit')
        parser.add_argument('--list-providers', action='store_true', help='List known providers and exit')
        return parser

    @staticmethod
    def build_point_query(args: argparse.Namespace) -> PointRadiusQuery:
        if not all(math.isfinite(v) for v in (args.lat, args.long, args.radius)):
            raise ValidationError("lat, long and radius must be finite numbers")
        if args.lat == 0 and args.long == 0:
            raise ConfigurationError("When using point mode, you must specify lat and long parameters")
        if args.radius <= 0:
            raise ConfigurationError("Radius must be greater than 0")

        detail = PointRadiusService.coerce_detail_level(args.detail)
        if detail.defaulted:
            logger.warning("Detail level %d is out of range (1-4), using default level %d",
                           args.detail, detail.value)
        return PointRadiusQuery(args.lat, args.long, args.radius, detail.value)

    @classmethod
    def run_from_command_line(cls, argv: Optional[List[str]] = None,
                              environ: Optional[Dict[str, str]] = None) -> bool:
        """Parse arguments, load configuration and run. Returns overall success."""
        args = cls.build_argument_parser().parse_args(argv)
        environ = os.environ if environ is None else environ
        config_service = ConfigService()

        if args.list_providers:
            cls.list_providers()
            return True

        point_query = None
        if args.point:
            point_query = cls.build_point_query(args)
            try:
                raw_config = config_service.read_config(args.config)
            except ConfigurationError as e:
                logger.warning("Failed to load configuration: %s. Using defaults.", e)
                config = config_service.default_config()
            else:
                # zones are ignored here, but a bad map section is still fatal
                config = config_service.prepare_config(raw_config, require_zones=False)
        else:
            config = config_service.load_config(args.config)

        LoggingManager.setup_logging(config, debug=ConfigService.is_debug_mode(environ))

        if args.list_zones:
            cls.list_zones(config_service.get_zones(config))
            return True

        download_config = config_service.load_download_config(config, environ, dry_run=args.dry_run)
        manager = cls(config, download_config, confirm=always_confirm if args.yes else prompt_confirmation)

        try:
            FileUtils.ensure_directory_exists(download_config.output_dir)
        except OSError as e:
            raise ConfigurationError(f"Destination '{download_config.output_dir}' can't be created: {e}") from e
        logger.info("Store destination set at: %s", download_config.output_dir)
        if download_config.dry_run:
            logger.info("Dry run: tiles will not be downloaded")

        return manager.run(point_query)
