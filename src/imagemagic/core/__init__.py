"""Core image handling for Image Magic Pro.

- **config**: Pydantic Settings configuration (``IMAGEMAGIC_*`` variables)
- **formats**: Supported output formats and encoder profiles
- **naming**: Filename sanitisation for downloads and archive entries
- **converter**: Pillow-based conversion, single file and concurrent batch
- **archive**: Zip packaging of multi-file results
- **filters**: CSS filter string parsing and Pillow rendering
- **editor**: Rotation-aware screenshot rendering and export
- **errors**: Exception hierarchy mapped to HTTP status codes by the API

Usage Example
-------------
    from imagemagic.core import convert_image

    with open("shot.png", "rb") as fh:
        webp_bytes = convert_image(fh.read(), "webp", compress=True)
"""

from imagemagic.core.config import ImageMagicConfig, config
from imagemagic.core.converter import ConvertedItem, convert_batch, convert_image
from imagemagic.core.editor import export, render, rotated_canvas_size
from imagemagic.core.errors import (
    ConversionError,
    FilterError,
    ImageMagicError,
    PayloadTooLargeError,
    ValidationError,
)

__all__ = [
    "ConversionError",
    "ConvertedItem",
    "FilterError",
    "ImageMagicConfig",
    "ImageMagicError",
    "PayloadTooLargeError",
    "ValidationError",
    "config",
    "convert_batch",
    "convert_image",
    "export",
    "render",
    "rotated_canvas_size",
]
