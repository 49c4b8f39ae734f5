import math
import os
import sys
from datetime import datetime, timezone

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest

from meshtiles.models.region import Coerced, PointRadiusQuery
from meshtiles.services.point_radius_service import PointRadiusService


class TestPointRadiusService:

    def test_bounding_box_flat_earth(self):
        query = PointRadiusQuery(40.4168, -3.7038, 10.0, 2)
        bbox = PointRadiusService.bounding_box(query)

        lat_delta = 10.0 / 111.32
        lon_delta = 10.0 / (111.32 * math.cos(math.radians(40.4168)))
        assert bbox.min_lat == pytest.approx(40.4168 - lat_delta)
        assert bbox.max_lat == pytest.approx(40.4168 + lat_delta)
        assert bbox.min_lon == pytest.approx(-3.7038 - lon_delta)
        assert bbox.max_lon == pytest.approx(-3.7038 + lon_delta)
        # longitude span widens away from the equator
        assert (bbox.max_lon - bbox.min_lon) > (bbox.max_lat - bbox.min_lat)

    def test_latitude_is_clamped(self):
        bbox = PointRadiusService.bounding_box(PointRadiusQuery(89.9, 10.0, 50.0, 1))
        assert bbox.max_lat == 90.0
        assert bbox.min_lat == pytest.approx(89.9 - 50.0 / 111.32)

        bbox = PointRadiusService.bounding_box(PointRadiusQuery(-89.9, 10.0, 50.0, 1))
        assert bbox.min_lat == -90.0

    def test_longitude_wraps(self):
        lon_delta = 50.0 / 111.32
        east = PointRadiusService.bounding_box(PointRadiusQuery(0.0, 179.9, 50.0, 1))
        assert east.max_lon == pytest.approx(179.9 + lon_delta - 360.0)
        assert east.min_lon == pytest.approx(179.9 - lon_delta)

        west = PointRadiusService.bounding_box(PointRadiusQuery(0.0, -179.9, 50.0, 1))
        assert west.min_lon == pytest.approx(-179.9 - lon_delta + 360.0)

    @pytest.mark.parametrize("level,zooms", [
        (1, list(range(6, 11))),
        (2, list(range(7, 13))),
        (3, list(range(8, 15))),
        (4, list(range(9, 17))),
    ])
    def test_detail_levels(self, level, zooms):
        assert PointRadiusService.zoom_levels_for_detail(level) == zooms

    @pytest.mark.parametrize("level", [-1, 0, 5, 99])
    def test_unknown_detail_level_uses_medium(self, level):
        assert PointRadiusService.zoom_levels_for_detail(level) == list(range(7, 13))
        assert PointRadiusService.coerce_detail_level(level) == Coerced(2, defaulted=True)

    def test_valid_detail_level_is_kept(self):
        assert PointRadiusService.coerce_detail_level(4) == Coerced(4, defaulted=False)

    def test_folder_name(self):
        query = PointRadiusQuery(40.4168, -3.7038, 25.0, 3)
        assert PointRadiusService.folder_name(query) == "point_40.4168_-3.7038_r25.0_d3"

    def test_write_metadata(self, tmp_path):
        query = PointRadiusQuery(40.4168, -3.7038, 25.0, 3)
        bbox = PointRadiusService.bounding_box(query)
        zooms = PointRadiusService.zoom_levels_for_detail(3)
        timestamp = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        path = PointRadiusService.write_metadata(query, bbox, zooms, tmp_path.as_posix(), timestamp=timestamp)

        lines = open(path, encoding="utf-8").read().splitlines()
        assert lines == [
            "Center: 40.416800, -3.703800",
            "Radius: 25.00 km",
            "Detail Level: 3",
            "Zoom Levels: [8, 9, 10, 11, 12, 13, 14]",
            f"Bounding Box: {bbox.to_region_string()}",
            "Timestamp: 2026-01-02T03:04:05+00:00",
        ]
