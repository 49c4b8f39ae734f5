import math
from typing import List, Tuple

from meshtiles.models.region import BoundingBox
from meshtiles.models.tile import TileId


# Latitude at which the Web-Mercator square ends (y = 0 / y = 2^z)
MAX_MERCATOR_LATITUDE = 85.0511287798066


class TileCalculator:
    """Utility class for tile coordinate calculations"""

    @staticmethod
    def lon_to_tile_x(lon_deg: float, zoom: int) -> int:
        """Longitude to tile column"""
        n = 2.0 ** zoom
        return math.floor(((lon_deg + 180.0) / 360.0) * n)

    @staticmethod
    def lat_to_tile_y(lat_deg: float, zoom: int) -> int:
        """Latitude to tile row (forward Web-Mercator). Not defined at the poles."""
        n = 2.0 ** zoom
        lat_rad = lat_deg * math.pi / 180.0
        return math.floor(((1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0) * n)

    @staticmethod
    def tile_x_to_lon(x: int, zoom: int) -> float:
        """Longitude of the tile's left edge"""
        n = 2.0 ** zoom
        return (x / n) * 360.0 - 180.0

    @staticmethod
    def tile_y_to_lat(y: int, zoom: int) -> float:
        """Latitude of the tile's top edge"""
        n = 2.0 ** zoom
        return math.atan(math.sinh(math.pi - 2.0 * math.pi * y / n)) * 180.0 / math.pi

    @staticmethod
    def deg2num(lat_deg: float, lon_deg: float, zoom: int) -> Tuple[int, int]:
        """Convert lat/lon to tile coordinates"""
        return TileCalculator.lon_to_tile_x(lon_deg, zoom), TileCalculator.lat_to_tile_y(lat_deg, zoom)

    @staticmethod
    def tile_bounds(zoom: int, x: int, y: int) -> List[float]:
        """Return geographic bounds [minLon, minLat, maxLon, maxLat] for XYZ tile."""
        lon_min = TileCalculator.tile_x_to_lon(x, zoom)
        lon_max = TileCalculator.tile_x_to_lon(x + 1, zoom)
        lat_max = TileCalculator.tile_y_to_lat(y, zoom)
        lat_min = TileCalculator.tile_y_to_lat(y + 1, zoom)
        return [lon_min, lat_min, lon_max, lat_max]

    @staticmethod
    def clamp_latitude(lat_deg: float) -> float:
        return max(-MAX_MERCATOR_LATITUDE, min(MAX_MERCATOR_LATITUDE, lat_deg))

    @staticmethod
    def clamp_tile_index(value: int, zoom: int) -> int:
        return max(0, min(2 ** zoom - 1, value))

    @staticmethod
    def tile_range_for_bbox(bbox: BoundingBox, zoom: int) -> Tuple[int, int, int, int]:
        """Inclusive (min_x, max_x, min_y, max_y) covering bbox at zoom.

        Y uses max_lat for the start row because rows grow southward. Either
        diagonal corner order is accepted.
        """
        start_x, start_y = TileCalculator.deg2num(TileCalculator.clamp_latitude(bbox.max_lat), bbox.min_lon, zoom)
        end_x, end_y = TileCalculator.deg2num(TileCalculator.clamp_latitude(bbox.min_lat), bbox.max_lon, zoom)

        min_x = TileCalculator.clamp_tile_index(min(start_x, end_x), zoom)
        max_x = TileCalculator.clamp_tile_index(max(start_x, end_x), zoom)
        min_y = TileCalculator.clamp_tile_index(min(start_y, end_y), zoom)
        max_y = TileCalculator.clamp_tile_index(max(start_y, end_y), zoom)
        return min_x, max_x, min_y, max_y

    @staticmethod
    def get_tiles_for_bbox(bbox: BoundingBox, zoom: int) -> List[TileId]:
        """Get all tile ids for given bbox at one zoom level"""
        min_x, max_x, min_y, max_y = TileCalculator.tile_range_for_bbox(bbox, zoom)
        return [TileId(zoom, x, y)
                for x in range(min_x, max_x + 1)
                for y in range(min_y, max_y + 1)]

    @staticmethod
    def calculate_tile_count(bbox: BoundingBox, zoom: int) -> int:
        """Calculate number of tiles for given bbox at one zoom level"""
        min_x, max_x, min_y, max_y = TileCalculator.tile_range_for_bbox(bbox, zoom)
        return (max_x - min_x + 1) * (max_y - min_y + 1)
