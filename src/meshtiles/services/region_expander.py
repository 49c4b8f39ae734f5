import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from meshtiles.models.region import BoundingBox
from meshtiles.models.tile import TileId
from meshtiles.utils.tile_calculator import TileCalculator

logger = logging.getLogger(__name__)


# Average bytes per tile by zoom bucket (upper bound inclusive); advisory only
TILE_SIZE_BUCKETS = [
    (5, 20 * 1024),
    (8, 30 * 1024),
    (11, 50 * 1024),
    (14, 80 * 1024),
]
LARGEST_TILE_SIZE = 120 * 1024


@dataclass
class RegionExpansion:
    """Tiles to fetch for a set of regions and zoom levels plus a size estimate"""
    tile_ids: List[TileId] = field(default_factory=list)
    estimated_bytes: int = 0
    count_by_zoom: Dict[int, int] = field(default_factory=dict)

    @property
    def total_tiles(self) -> int:
        return sum(self.count_by_zoom.values())

    def estimated_bytes_by_zoom(self) -> Dict[int, int]:
        return {zoom: count * RegionExpander.estimate_tile_size(zoom)
                for zoom, count in self.count_by_zoom.items()}


class RegionExpander:
    """Turns region strings and zoom levels into concrete tile ids"""

    @staticmethod
    def estimate_tile_size(zoom: int) -> int:
        for max_zoom, size in TILE_SIZE_BUCKETS:
            if zoom <= max_zoom:
                return size
        return LARGEST_TILE_SIZE

    @staticmethod
    def parse_regions(regions: Sequence[str]) -> List[BoundingBox]:
        """Parse every region string; raises ValidationError on the first bad one"""
        return [BoundingBox.from_region_string(region) for region in regions]

    def expand(self, regions: Sequence[str], zoom_levels: Sequence[int]) -> RegionExpansion:
        """Enumerate tiles zoom by zoom, region by region.

        Overlapping regions are not de-duplicated; the fetch step skips
        tiles that already exist on disk.
        """
        boxes = self.parse_regions(regions)
        expansion = RegionExpansion()

        for zoom in zoom_levels:
            for bbox in boxes:
                expansion.tile_ids.extend(TileCalculator.get_tiles_for_bbox(bbox, zoom))
                count = TileCalculator.calculate_tile_count(bbox, zoom)
                expansion.count_by_zoom[zoom] = expansion.count_by_zoom.get(zoom, 0) + count

        expansion.estimated_bytes = sum(expansion.estimated_bytes_by_zoom().values())
        logger.debug("Expanded %d region(s) over zooms %s into %d tiles",
                     len(boxes), list(zoom_levels), expansion.total_tiles)
        return expansion
