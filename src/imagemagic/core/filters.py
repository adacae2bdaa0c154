"""CSS-style filter strings for the screenshot editor.

The browser editor draws with ``ctx.filter = "<css filter list>"``.  This
module parses the same strings and applies them with Pillow so that an
export rendered by the API matches what the canvas shows.

Colour functions are expressed as the 3x4 colour matrices from the Filter
Effects specification and applied with ``Image.convert("RGB", matrix)``,
which clips each intermediate result to 0-255 the way a chain of filter
primitives does.  ``opacity`` scales the alpha channel only.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from PIL import Image

from imagemagic.core.converter import has_alpha
from imagemagic.core.errors import FilterError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterPreset:
    name: str
    value: str


FILTER_PRESETS: tuple[FilterPreset, ...] = (
    FilterPreset("Original", "none"),
    FilterPreset("Mono", "grayscale(100%)"),
    FilterPreset("Warm", "sepia(80%) saturate(120%)"),
    FilterPreset("High Contrast", "contrast(1.35)"),
    FilterPreset("Bright", "brightness(1.15)"),
    FilterPreset("Cool", "hue-rotate(165deg) saturate(120%)"),
    FilterPreset("Film", "contrast(1.15) sepia(28%)"),
    FilterPreset("Invert", "invert(100%)"),
)

NO_FILTER = "none"

# Functions whose amount is capped at 100%.
_CLAMPED = frozenset({"grayscale", "sepia", "invert", "opacity"})
_AMOUNT_FUNCTIONS = frozenset(
    {"grayscale", "sepia", "saturate", "brightness", "contrast", "invert", "opacity"}
)
SUPPORTED_FUNCTIONS = _AMOUNT_FUNCTIONS | {"hue-rotate"}

_FUNCTION_RE = re.compile(r"\s*([a-zA-Z-]+)\(\s*([^()]*?)\s*\)\s*")
_AMOUNT_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+))(%?)$")
_ANGLE_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+))(deg|rad|turn|grad)?$", re.IGNORECASE)

_DEGREES_PER_UNIT = {
    "deg": 1.0,
    "rad": 180.0 / math.pi,
    "turn": 360.0,
    "grad": 0.9,
}


@dataclass(frozen=True)
class FilterOp:
    """One parsed filter function.

    ``amount`` is a plain factor (``100%`` -> 1.0) for every function
    except ``hue-rotate``, where it is an angle in degrees.
    """

    name: str
    amount: float


def _parse_amount(name: str, raw: str) -> float:
    if not raw:
        return 1.0
    match = _AMOUNT_RE.match(raw)
    if not match:
        raise FilterError(f"Invalid value for {name}(): {raw!r}")
    value = float(match.group(1))
    if match.group(2):
        value /= 100.0
    if value < 0:
        raise FilterError(f"Negative values are not allowed in {name}()")
    if name in _CLAMPED:
        value = min(value, 1.0)
    return value


def _parse_angle(raw: str) -> float:
    if not raw:
        return 0.0
    match = _ANGLE_RE.match(raw)
    if not match:
        raise FilterError(f"Invalid angle for hue-rotate(): {raw!r}")
    unit = (match.group(2) or "deg").lower()
    return float(match.group(1)) * _DEGREES_PER_UNIT[unit]


def parse_filter(text: str | None) -> list[FilterOp]:
    """Parse a CSS filter list into :class:`FilterOp` items.

    Args:
        text: Filter string such as ``"sepia(80%) saturate(120%)"``.
            ``None``, blank and ``"none"`` mean no filtering.

    Returns:
        The operations in application order.

    Raises:
        FilterError: On unknown functions, malformed arguments, negative
            amounts, or trailing garbage.
    """
    if text is None:
        return []
    text = text.strip()
    if not text or text.lower() == NO_FILTER:
        return []

    ops: list[FilterOp] = []
    pos = 0
    while pos < len(text):
        match = _FUNCTION_RE.match(text, pos)
        if not match:
            raise FilterError(f"Invalid filter: {text!r}")
        name = match.group(1).lower()
        raw = match.group(2)
        if name not in SUPPORTED_FUNCTIONS:
            raise FilterError(f"Unsupported filter function: {name}")
        if name == "hue-rotate":
            ops.append(FilterOp(name, _parse_angle(raw)))
        else:
            ops.append(FilterOp(name, _parse_amount(name, raw)))
        pos = match.end()
    return ops


def _rows_to_matrix(rows, offsets=(0.0, 0.0, 0.0)) -> tuple[float, ...]:
    """Flatten 3x3 rows plus per-channel offsets into Pillow's 12-tuple."""
    return tuple(
        value
        for row, offset in zip(rows, offsets)
        for value in (*row, offset)
    )


def colour_matrix(op: FilterOp) -> tuple[float, ...] | None:
    """Return the Pillow RGB matrix for *op*, or ``None`` for alpha-only ops."""
    a = op.amount

    if op.name == "grayscale":
        s = 1.0 - a
        return _rows_to_matrix((
            (0.2126 + 0.7874 * s, 0.7152 - 0.7152 * s, 0.0722 - 0.0722 * s),
            (0.2126 - 0.2126 * s, 0.7152 + 0.2848 * s, 0.0722 - 0.0722 * s),
            (0.2126 - 0.2126 * s, 0.7152 - 0.7152 * s, 0.0722 + 0.9278 * s),
        ))

    if op.name == "sepia":
        s = 1.0 - a
        return _rows_to_matrix((
            (0.393 + 0.607 * s, 0.769 - 0.769 * s, 0.189 - 0.189 * s),
            (0.349 - 0.349 * s, 0.686 + 0.314 * s, 0.168 - 0.168 * s),
            (0.272 - 0.272 * s, 0.534 - 0.534 * s, 0.131 + 0.869 * s),
        ))

    if op.name == "saturate":
        return _rows_to_matrix((
            (0.213 + 0.787 * a, 0.715 - 0.715 * a, 0.072 - 0.072 * a),
            (0.213 - 0.213 * a, 0.715 + 0.285 * a, 0.072 - 0.072 * a),
            (0.213 - 0.213 * a, 0.715 - 0.715 * a, 0.072 + 0.928 * a),
        ))

    if op.name == "hue-rotate":
        rad = math.radians(a)
        cos, sin = math.cos(rad), math.sin(rad)
        return _rows_to_matrix((
            (
                0.213 + cos * 0.787 - sin * 0.213,
                0.715 - cos * 0.715 - sin * 0.715,
                0.072 - cos * 0.072 + sin * 0.928,
            ),
            (
                0.213 - cos * 0.213 + sin * 0.143,
                0.715 + cos * 0.285 + sin * 0.140,
                0.072 - cos * 0.072 - sin * 0.283,
            ),
            (
                0.213 - cos * 0.213 - sin * 0.787,
                0.715 - cos * 0.715 + sin * 0.715,
                0.072 + cos * 0.928 + sin * 0.072,
            ),
        ))

    if op.name == "brightness":
        return _rows_to_matrix(((a, 0, 0), (0, a, 0), (0, 0, a)))

    if op.name == "contrast":
        offset = 255.0 * (0.5 - 0.5 * a)
        return _rows_to_matrix(((a, 0, 0), (0, a, 0), (0, 0, a)), (offset,) * 3)

    if op.name == "invert":
        scale = 1.0 - 2.0 * a
        return _rows_to_matrix(((scale, 0, 0), (0, scale, 0), (0, 0, scale)), (255.0 * a,) * 3)

    return None


def apply_filter(image: Image.Image, text: str | None) -> Image.Image:
    """Apply a CSS filter list to *image*.

    The alpha channel, when present, is preserved and only ``opacity``
    changes it.  The result is RGBA if the input had alpha, RGB otherwise.

    Raises:
        FilterError: If *text* cannot be parsed.
    """
    ops = parse_filter(text)
    if not ops:
        return image

    if has_alpha(image):
        rgba = image.convert("RGBA")
        rgb, alpha = rgba.convert("RGB"), rgba.getchannel("A")
    else:
        rgb, alpha = image.convert("RGB"), None

    for op in ops:
        if op.name == "opacity":
            if alpha is None:
                alpha = Image.new("L", rgb.size, 255)
            alpha = alpha.point(lambda v, f=op.amount: round(v * f))
            continue
        rgb = rgb.convert("RGB", colour_matrix(op))

    logger.debug("Applied filter %r (%d ops) to %dx%d image", text, len(ops), *rgb.size)

    if alpha is None:
        return rgb
    rgb.putalpha(alpha)
    return rgb
