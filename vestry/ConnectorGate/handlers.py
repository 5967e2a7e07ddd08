"""
ConnectorGate external handlers.

The connector talks to three narrow collaborators, each a single-method
protocol: a MIME resolver, an image-size resolver and an image resizer.
Default implementations use the standard mimetypes table and Pillow.
"""

import mimetypes
from typing import Protocol, runtime_checkable

from PIL import Image

from .models import Dimensions

# Initialize mimetypes
mimetypes.init()

DEFAULT_MIME_TYPE = "application/octet-stream"


@runtime_checkable
class MimeResolver(Protocol):
    """Resolves the MIME type of a file."""

    def mime(self, path: str) -> str:
        ...


@runtime_checkable
class ImageSizeResolver(Protocol):
    """Reads the pixel dimensions of an image file."""

    def dimensions(self, path: str) -> Dimensions:
        ...


@runtime_checkable
class ImageResizer(Protocol):
    """Resizes an image file in place."""

    def resize(self, path: str, width: int, height: int) -> None:
        ...


class MimeType:
    """Extension-based MIME lookup backed by the mimetypes table."""

    def __init__(self, default: str = DEFAULT_MIME_TYPE):
        self.default = default

    def mime(self, path: str) -> str:
        mime_type, _ = mimetypes.guess_type(str(path))
        return mime_type or self.default


class ImageSize:
    """Pillow-backed image dimension reader."""

    def dimensions(self, path: str) -> Dimensions:
        """
        Read the pixel size of an image.

        Raises:
            OSError: If the file is not a readable image
            ValueError: If the header claims more pixels than Pillow will open
        """
        with _open_image(path) as img:
            return Dimensions(width=img.width, height=img.height)


class ImageResize:
    """Pillow-backed in-place resizer. The original format is preserved."""

    def resize(self, path: str, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid dimensions: {width}x{height}")

        with _open_image(path) as img:
            image_format = img.format
            resized = img.resize((width, height))

        resized.save(path, format=image_format)


def _open_image(path: str) -> Image.Image:
    try:
        return Image.open(path)
    except Image.DecompressionBombError as e:
        raise ValueError(f"Image too large: {e}") from e
