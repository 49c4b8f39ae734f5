import os
import tempfile

from meshtiles.models.tile import TileId


DIRECTORY_MODE = 0o755
FILE_MODE = 0o644

KB = 1024
MB = 1024 * KB
GB = 1024 * MB


class FileUtils:
    """Utility class for file operations"""

    @staticmethod
    def ensure_directory_exists(directory_path: str) -> None:
        """Create directory if it doesn't exist"""
        os.makedirs(directory_path, mode=DIRECTORY_MODE, exist_ok=True)

    @staticmethod
    def get_tile_path(output_dir: str, provider_name: str, style_name: str, tile_id: TileId) -> str:
        """Tile file path: {output}/{provider}/{style}/{z}/{x}/{y}.png"""
        return os.path.join(output_dir, provider_name, style_name,
                            str(tile_id.zoom), str(tile_id.x), f"{tile_id.y}.png")

    @staticmethod
    def file_exists(file_path: str) -> bool:
        """Check if file exists"""
        return os.path.exists(file_path)

    @staticmethod
    def write_bytes(file_path: str, content: bytes) -> None:
        """Write through a temp file in the same directory, then rename.

        A failed write never leaves a truncated file at ``file_path``.
        """
        directory, name = os.path.split(file_path)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=directory or None)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(content)
            os.chmod(tmp_path, FILE_MODE)
            os.replace(tmp_path, file_path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    @staticmethod
    def format_size(num_bytes: int) -> str:
        """Human readable size using 1024 multiples"""
        if num_bytes >= GB:
            return f"{num_bytes / GB:.2f} GB"
        if num_bytes >= MB:
            return f"{num_bytes / MB:.2f} MB"
        if num_bytes >= KB:
            return f"{num_bytes / KB:.2f} KB"
        return f"{num_bytes} bytes"
