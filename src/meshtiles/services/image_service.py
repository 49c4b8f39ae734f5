import io

from PIL import Image, UnidentifiedImageError

from meshtiles.exceptions.tile_downloader_exceptions import ImageProcessingError


PNG_COMPRESS_LEVEL = 9
# Modes Pillow can write straight to PNG
PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}


class ImageService:
    """Decodes provider payloads and re-encodes them as compressed PNG"""

    @staticmethod
    def decode(data: bytes) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ImageProcessingError(f"failed to decode image: {e}") from e
        return image

    @staticmethod
    def encode_png(image: Image.Image) -> bytes:
        """PNG at maximum zlib compression"""
        if image.mode not in PNG_MODES:
            image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
        stream = io.BytesIO()
        try:
            image.save(stream, format="PNG", optimize=True, compress_level=PNG_COMPRESS_LEVEL)
        except (OSError, ValueError) as e:
            raise ImageProcessingError(f"failed to encode PNG: {e}") from e
        return stream.getvalue()

    def to_compressed_png(self, data: bytes) -> bytes:
        return self.encode_png(self.decode(data))
