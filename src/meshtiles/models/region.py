import math
from dataclasses import dataclass, field
from typing import List

from meshtiles.exceptions.tile_downloader_exceptions import ValidationError


@dataclass(frozen=True)
class Coerced:
    """A configuration value together with whether a fallback was applied"""
    value: int
    defaulted: bool = False


@dataclass(frozen=True)
class BoundingBox:
    """Geographic rectangle in degrees; corner order is not enforced"""
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    @classmethod
    def from_region_string(cls, region: str) -> "BoundingBox":
        """Parse 'minLat,minLon,maxLat,maxLon'"""
        parts = str(region).split(',')
        if len(parts) != 4:
            raise ValidationError(f"Invalid region format: {region!r} (expected minLat,minLon,maxLat,maxLon)")
        try:
            min_lat, min_lon, max_lat, max_lon = (float(p.strip()) for p in parts)
        except ValueError as e:
            raise ValidationError(f"Invalid coordinate in region {region!r}: {e}") from e
        if not all(math.isfinite(v) for v in (min_lat, min_lon, max_lat, max_lon)):
            raise ValidationError(f"Invalid coordinate in region {region!r}: values must be finite numbers")
        return cls(min_lat, min_lon, max_lat, max_lon)

    def to_region_string(self) -> str:
        return f"{self.min_lat:.6f},{self.min_lon:.6f},{self.max_lat:.6f},{self.max_lon:.6f}"


@dataclass
class Zone:
    """Named group of regions downloaded over the same zoom range"""
    name: str
    regions: List[str] = field(default_factory=list)
    zoom_in: int = 8
    zoom_out: int = 1

    def zoom_levels(self) -> List[int]:
        """Zoom levels from coarsest (out) to finest (in), both inclusive"""
        return list(range(self.zoom_out, self.zoom_in + 1))

    def bounding_boxes(self) -> List[BoundingBox]:
        return [BoundingBox.from_region_string(r) for r in self.regions]


@dataclass(frozen=True)
class PointRadiusQuery:
    """Center point plus radius, an alternative to configured zones"""
    center_lat: float
    center_lon: float
    radius_km: float
    detail_level: int = 2
