import logging
import math
import os
from datetime import datetime
from typing import List, Optional

from meshtiles.models.region import BoundingBox, Coerced, PointRadiusQuery
from meshtiles.utils.file_utils import FileUtils

logger = logging.getLogger(__name__)


KM_PER_DEGREE = 111.32
DEFAULT_DETAIL_LEVEL = 2
# detail level -> (min zoom, max zoom)
DETAIL_ZOOM_RANGES = {
    1: (6, 10),   # very large areas
    2: (7, 12),   # regional
    3: (8, 14),   # cities and towns
    4: (9, 16),   # street level
}
METADATA_FILENAME = "metadata.txt"


class PointRadiusService:
    """Derives a bounding box and zoom range from a center point and radius"""

    @staticmethod
    def coerce_detail_level(level: int) -> Coerced:
        if level in DETAIL_ZOOM_RANGES:
            return Coerced(level)
        return Coerced(DEFAULT_DETAIL_LEVEL, defaulted=True)

    @staticmethod
    def zoom_levels_for_detail(level: int) -> List[int]:
        """Zoom levels for a detail level; unknown levels use the default range"""
        min_zoom, max_zoom = DETAIL_ZOOM_RANGES.get(level, DETAIL_ZOOM_RANGES[DEFAULT_DETAIL_LEVEL])
        return list(range(min_zoom, max_zoom + 1))

    @staticmethod
    def bounding_box(query: PointRadiusQuery) -> BoundingBox:
        """Flat-earth approximation of the box around the center.

        Latitude is clamped to [-90, 90]; longitude wraps across +/-180.
        """
        lat_radius = query.radius_km / KM_PER_DEGREE
        lon_radius = query.radius_km / (KM_PER_DEGREE * math.cos(query.center_lat * math.pi / 180.0))

        min_lat = max(-90.0, query.center_lat - lat_radius)
        max_lat = min(90.0, query.center_lat + lat_radius)
        min_lon = query.center_lon - lon_radius
        max_lon = query.center_lon + lon_radius

        if min_lon < -180.0:
            min_lon += 360.0
        if max_lon > 180.0:
            max_lon -= 360.0

        return BoundingBox(min_lat, min_lon, max_lat, max_lon)

    @staticmethod
    def folder_name(query: PointRadiusQuery) -> str:
        return (f"point_{query.center_lat:.4f}_{query.center_lon:.4f}"
                f"_r{query.radius_km:.1f}_d{query.detail_level}")

    @staticmethod
    def write_metadata(query: PointRadiusQuery, bbox: BoundingBox, zoom_levels: List[int],
                       directory: str, timestamp: Optional[datetime] = None) -> str:
        """Write a human readable metadata.txt into directory; returns its path"""
        timestamp = timestamp or datetime.now().astimezone()
        content = (
            f"Center: {query.center_lat:.6f}, {query.center_lon:.6f}\n"
            f"Radius: {query.radius_km:.2f} km\n"
            f"Detail Level: {query.detail_level}\n"
            f"Zoom Levels: {zoom_levels}\n"
            f"Bounding Box: {bbox.to_region_string()}\n"
            f"Timestamp: {timestamp.isoformat(timespec='seconds')}\n"
        )
        path = os.path.join(directory, METADATA_FILENAME)
        FileUtils.write_bytes(path, content.encode("utf-8"))
        logger.debug("Wrote point metadata to %s", path)
        return path
