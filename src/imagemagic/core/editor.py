"""Screenshot editor rendering.

The interactive editor lives in the browser (``static/js/editor.js``): it
draws the pasted image onto a canvas sized to fit the rotated image, with a
CSS filter and a rotation transform, then exports the canvas as a blob.
This module performs the same render with Pillow so the API can export a
pasted image with identical geometry.

Rotation follows canvas conventions: positive angles turn clockwise and the
canvas grows to the bounding box of the rotated image.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from PIL import Image

from imagemagic.core.converter import DEFAULT_BACKGROUND, encode_image, open_image
from imagemagic.core.errors import ValidationError
from imagemagic.core.filters import NO_FILTER, apply_filter
from imagemagic.core.formats import MIME_BY_FORMAT
from imagemagic.core.naming import sanitize_stem

logger = logging.getLogger(__name__)

DEFAULT_NAME = "capture"
DEFAULT_FORMAT = "png"
EDITOR_FORMATS: tuple[str, ...] = ("png", "jpeg", "webp")
ROTATION_STEP = 90

# Trig results are rounded to this many decimals before ceil() so that
# right angles do not pick up a spurious extra pixel from float noise.
_SIZE_PRECISION = 9

_RIGHT_ANGLE_TRANSPOSE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


@dataclass(frozen=True)
class EditorExport:
    """Result of exporting an edited screenshot."""

    filename: str
    data: bytes
    media_type: str
    source_width: int
    source_height: int
    width: int
    height: int


def normalize_rotation(degrees: float) -> float:
    """Map any angle into ``[0, 360)``.

    >>> normalize_rotation(-90)
    270
    >>> normalize_rotation(450)
    90

    Raises:
        ValidationError: If *degrees* is NaN or infinite.
    """
    if not math.isfinite(degrees):
        raise ValidationError("Rotation must be a finite number.")
    return ((degrees % 360) + 360) % 360


def rotated_canvas_size(width: int, height: int, degrees: float) -> tuple[int, int]:
    """Size of the canvas that holds a ``width`` x ``height`` image rotated by *degrees*.

    Args:
        width: Source width in pixels.
        height: Source height in pixels.
        degrees: Rotation angle, any finite value.

    Returns:
        ``(canvas_width, canvas_height)``.

    Raises:
        ValidationError: If *degrees* is NaN or infinite.
    """
    radians = math.radians(normalize_rotation(degrees))
    sin = abs(math.sin(radians))
    cos = abs(math.cos(radians))
    canvas_w = math.ceil(round(width * cos + height * sin, _SIZE_PRECISION))
    canvas_h = math.ceil(round(width * sin + height * cos, _SIZE_PRECISION))
    return canvas_w, canvas_h


def render(image: Image.Image, rotation: float = 0, filter: str | None = NO_FILTER) -> Image.Image:
    """Draw *image* filtered and rotated onto a fitted transparent canvas.

    Raises:
        FilterError: If *filter* cannot be parsed.
    """
    filtered = apply_filter(image, filter).convert("RGBA")
    angle = normalize_rotation(rotation)
    width, height = rotated_canvas_size(filtered.width, filtered.height, angle)

    if angle == 0:
        return filtered
    if angle in _RIGHT_ANGLE_TRANSPOSE:
        return filtered.transpose(_RIGHT_ANGLE_TRANSPOSE[int(angle)])

    # Pillow rotates counter-clockwise; the canvas convention is clockwise.
    rotated = filtered.rotate(-angle, resample=Image.Resampling.BICUBIC, expand=True)
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    # Pillow may round the expanded size differently; centre and clip.
    canvas.paste(rotated, ((width - rotated.width) // 2, (height - rotated.height) // 2))
    return canvas


def export_filename(name: str | None, fmt: str) -> str:
    """Download name for an edited screenshot."""
    return f"{sanitize_stem(name or DEFAULT_NAME, DEFAULT_NAME)}.{fmt}"


def export(
    data: bytes,
    *,
    rotation: float = 0,
    filter: str | None = NO_FILTER,
    name: str | None = DEFAULT_NAME,
    fmt: str = DEFAULT_FORMAT,
    background: tuple[int, int, int] = DEFAULT_BACKGROUND,
) -> EditorExport:
    """Render a pasted screenshot and encode it for download.

    Args:
        data: Encoded source image.
        rotation: Clockwise rotation in degrees.
        filter: CSS filter list, ``"none"`` for no filtering.
        name: Requested filename stem.
        fmt: Output format (``png``, ``jpeg`` or ``webp``).
        background: Flatten colour for JPEG output.

    Returns:
        :class:`EditorExport` with the encoded image and its dimensions.

    Raises:
        ConversionError: If the source cannot be decoded or the result
            cannot be encoded.
        FilterError: If *filter* cannot be parsed.
    """
    source = open_image(data)
    rendered = render(source, rotation, filter)
    output = encode_image(rendered, fmt, compress=False, background=background)
    logger.info(
        "Exported %dx%d screenshot as %s (rotation=%s, filter=%r)",
        rendered.width,
        rendered.height,
        fmt,
        normalize_rotation(rotation),
        filter,
    )
    return EditorExport(
        filename=export_filename(name, fmt),
        data=output,
        media_type=MIME_BY_FORMAT[fmt],
        source_width=source.width,
        source_height=source.height,
        width=rendered.width,
        height=rendered.height,
    )

