import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest
from meshtiles.exceptions.tile_downloader_exceptions import ValidationError
from meshtiles.models.region import BoundingBox
from meshtiles.services.region_expander import RegionExpander
from meshtiles.utils.tile_calculator import TileCalculator


class TestRegionExpander:
    """Region strings and zoom levels to tile ids"""

    def setup_method(self):
        self.expander = RegionExpander()

    def test_corner_order_does_not_matter(self):
        a = self.expander.expand(["10,10,0,0"], [6])
        b = self.expander.expand(["0,0,10,10"], [6])
        assert set(a.tile_ids) == set(b.tile_ids)
        assert a.count_by_zoom == b.count_by_zoom

    def test_count_is_inclusive_rectangle(self):
        region = "40.0,-4.0,41.0,-3.0"
        bbox = BoundingBox.from_region_string(region)
        min_x, max_x, min_y, max_y = TileCalculator.tile_range_for_bbox(bbox, 10)

        expansion = self.expander.expand([region], [10])

        expected = (max_x - min_x + 1) * (max_y - min_y + 1)
        assert expansion.count_by_zoom == {10: expected}
        assert len(expansion.tile_ids) == expected
        assert expansion.total_tiles == expected

    def test_tiles_overlap_input_box(self):
        """Every tile returned for Madrid's box intersects that box"""
        min_lat, min_lon, max_lat, max_lon = 40.0, -4.0, 41.0, -3.0
        expansion = self.expander.expand(["40.0,-4.0,41.0,-3.0"], [10])

        assert expansion.tile_ids
        for tile in expansion.tile_ids:
            t_min_lon, t_min_lat, t_max_lon, t_max_lat = TileCalculator.tile_bounds(tile.zoom, tile.x, tile.y)
            assert t_min_lon <= max_lon and t_max_lon >= min_lon
            assert t_min_lat <= max_lat and t_max_lat >= min_lat

    def test_zoom_major_order(self):
        expansion = self.expander.expand(["40.0,-4.0,41.0,-3.0", "28.0,-16.0,28.5,-15.5"], [3, 4])
        zooms = [t.zoom for t in expansion.tile_ids]
        assert zooms == sorted(zooms)
        assert set(expansion.count_by_zoom) == {3, 4}

    def test_estimate_is_sum_of_buckets(self):
        regions = ["40.0,-4.0,41.0,-3.0"]
        zooms = [4, 5, 6, 8, 9, 11, 12, 14, 15]

        expansion = self.expander.expand(regions, zooms)

        expected = sum(count * RegionExpander.estimate_tile_size(zoom)
                       for zoom, count in expansion.count_by_zoom.items())
        assert expansion.estimated_bytes == expected

    @pytest.mark.parametrize("zoom,size", [
        (0, 20 * 1024), (5, 20 * 1024),
        (6, 30 * 1024), (8, 30 * 1024),
        (9, 50 * 1024), (11, 50 * 1024),
        (12, 80 * 1024), (14, 80 * 1024),
        (15, 120 * 1024), (19, 120 * 1024),
    ])
    def test_tile_size_buckets(self, zoom, size):
        assert RegionExpander.estimate_tile_size(zoom) == size

    def test_tile_size_is_non_decreasing(self):
        sizes = [RegionExpander.estimate_tile_size(z) for z in range(0, 20)]
        assert sizes == sorted(sizes)

    @pytest.mark.parametrize("region", [
        "40.0,-4.0,41.0",
        "40.0,-4.0,41.0,-3.0,7",
        "40.0;-4.0;41.0;-3.0",
        "north,-4.0,41.0,-3.0",
        "",
    ])
    def test_malformed_region(self, region):
        with pytest.raises(ValidationError):
            self.expander.expand([region], [5])

    def test_no_zoom_levels(self):
        expansion = self.expander.expand(["40.0,-4.0,41.0,-3.0"], [])
        assert expansion.tile_ids == []
        assert expansion.estimated_bytes == 0
        assert expansion.total_tiles == 0

    def test_overlapping_regions_are_counted_twice(self):
        expansion = self.expander.expand(["40.0,-4.0,41.0,-3.0", "40.0,-4.0,41.0,-3.0"], [8])
        assert len(expansion.tile_ids) == 2 * len(set(expansion.tile_ids))


class TestBoundingBox:

    def test_round_trip_region_string(self):
        bbox = BoundingBox.from_region_string(" 40.5, -3.25 ,41,-3")
        assert bbox == BoundingBox(40.5, -3.25, 41.0, -3.0)
        assert bbox.to_region_string() == "40.500000,-3.250000,41.000000,-3.000000"

    @pytest.mark.parametrize("region", [
        "nan,-4,41,nan",
        "40.0,-inf,41.0,-3.0",
        "40.0,-4.0,inf,-3.0",
    ])
    def test_non_finite_coordinates_are_rejected(self, region):
        with pytest.raises(ValidationError):
            BoundingBox.from_region_string(region)
