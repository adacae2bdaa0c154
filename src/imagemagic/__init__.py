"""Image Magic Pro - Batch image conversion and screenshot editing."""

__version__ = "0.1.0"

from imagemagic.core.config import ImageMagicConfig, config  # noqa: E402

__all__ = [
    "ImageMagicConfig",
    "config",
]
