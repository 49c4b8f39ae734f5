#!/usr/bin/env python3
"""
Meshtastic Tile Downloader - Main Entry Point
Downloads slippy-map raster tiles for configured zones or a point and radius
"""

import logging
import os
import sys
from typing import List, Optional

from meshtiles.core.tile_download_manager import TileDownloadManager
from meshtiles.exceptions.tile_downloader_exceptions import TileDownloaderException
from meshtiles.infrastructure.logging import LoggingManager
from meshtiles.services.config_service import ConfigService


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the tile downloader application"""
    # Setup logging (defaults); reconfigured once the YAML file is read
    debug = ConfigService.is_debug_mode(os.environ)
    LoggingManager.setup_logging({}, debug=debug)
    logger = logging.getLogger(__name__)

    logger.info("Log level is set to DEBUG" if debug else "Running in normal mode")

    try:
        success = TileDownloadManager.run_from_command_line(argv)
    except KeyboardInterrupt:
        print("\nDownload interrupted by user.")
        sys.exit(1)
    except TileDownloaderException as e:
        print(f"\nError: {e}")
        sys.exit(1)

    if not success:
        logger.error("Program finished with errors.")
        sys.exit(1)

    logger.info("Program finished successfully")


if __name__ == "__main__":
    main()
