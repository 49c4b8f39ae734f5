from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from meshtiles.exceptions.tile_downloader_exceptions import ValidationError


@dataclass(frozen=True)
class TileId:
    """Slippy-map tile address (zoom/x/y)"""
    zoom: int
    x: int
    y: int

    def __post_init__(self):
        if self.zoom < 0:
            raise ValidationError(f"Zoom level must be >= 0, got {self.zoom}")
        limit = 2 ** self.zoom
        if not (0 <= self.x < limit and 0 <= self.y < limit):
            raise ValidationError(
                f"Tile {self.zoom}/{self.x}/{self.y} is outside [0, {limit - 1}] at zoom {self.zoom}"
            )

    def __str__(self) -> str:
        return f"{self.zoom}/{self.x}/{self.y}"


class FetchStatus(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of fetching a single tile"""
    tile_id: TileId
    status: FetchStatus
    reason: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def success(cls, tile_id: TileId) -> "FetchResult":
        return cls(tile_id, FetchStatus.SUCCESS)

    @classmethod
    def skipped(cls, tile_id: TileId, reason: str) -> "FetchResult":
        return cls(tile_id, FetchStatus.SKIPPED, reason)

    @classmethod
    def failure(cls, tile_id: TileId, reason: str, status_code: Optional[int] = None) -> "FetchResult":
        return cls(tile_id, FetchStatus.FAILED, reason, status_code)

    @property
    def failed(self) -> bool:
        return self.status is FetchStatus.FAILED


@dataclass
class DownloadSummary:
    """Running counters for a batch of tile fetches"""
    total: int = 0
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def record(self, result: FetchResult) -> None:
        self.total += 1
        if result.status is FetchStatus.SUCCESS:
            self.downloaded += 1
        elif result.status is FetchStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
            self.errors.append(f"{result.tile_id}: {result.reason}")

    def merge(self, other: "DownloadSummary") -> None:
        self.total += other.total
        self.downloaded += other.downloaded
        self.skipped += other.skipped
        self.failed += other.failed
        self.errors.extend(other.errors)
