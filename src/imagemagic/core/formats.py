"""Target formats and per-format encoder settings.

Each supported output format has two encoder profiles: a default one tuned
for visual quality and a ``compress`` one tuned for size.  The settings map
onto Pillow's ``Image.save`` keyword arguments; PNG compression additionally
requests palette quantisation before encoding.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from imagemagic.core.errors import ValidationError

SUPPORTED_FORMATS: tuple[str, ...] = ("webp", "jpeg", "png")

MIME_BY_FORMAT: dict[str, str] = {
    "webp": "image/webp",
    "jpeg": "image/jpeg",
    "png": "image/png",
}

# Pillow encoder names differ from the public format ids only in case.
PIL_FORMAT: dict[str, str] = {
    "webp": "WEBP",
    "jpeg": "JPEG",
    "png": "PNG",
}

FORMAT_LABELS: dict[str, str] = {
    "webp": "WebP",
    "jpeg": "JPEG",
    "png": "PNG",
}

ACCEPTED_TYPES: tuple[str, ...] = ("image/png", "image/jpeg", "image/webp")
ACCEPTED_EXTENSIONS: tuple[str, ...] = ("png", "jpg", "jpeg", "webp")

FORMAT_ALIASES: dict[str, str] = {"jpg": "jpeg"}

DEFAULT_TARGET_FORMAT = "webp"

# Number of colours used when PNG output is palette-quantised.
PALETTE_COLOURS = 256


@dataclass(frozen=True)
class EncodeOptions:
    """Encoder settings for one output format.

    Attributes:
        save_kwargs: Keyword arguments passed to ``Image.save``.
        palette: Quantise to an indexed palette before encoding.
    """

    save_kwargs: dict = field(default_factory=dict)
    palette: bool = False


def normalize_format(value: str | None, default: str = DEFAULT_TARGET_FORMAT) -> str:
    """Return the canonical format id for *value*.

    Args:
        value: Raw format string from a form field.  ``None`` or blank
            selects *default*.
        default: Format used when no value was supplied.

    Returns:
        One of :data:`SUPPORTED_FORMATS`.

    Raises:
        ValidationError: If the format is not supported.
    """
    if value is None or not str(value).strip():
        value = default
    fmt = str(value).strip().lower()
    fmt = FORMAT_ALIASES.get(fmt, fmt)
    if fmt not in SUPPORTED_FORMATS:
        raise ValidationError("Unsupported target format.")
    return fmt


def get_format_options(target_format: str, compress: bool) -> EncodeOptions:
    """Return the encoder profile for *target_format*.

    Args:
        target_format: A canonical format id.
        compress: Select the size-optimised profile.

    Returns:
        :class:`EncodeOptions`.  Unknown formats get an empty profile.
    """
    if target_format == "webp":
        if compress:
            return EncodeOptions({"lossless": True, "method": 6})
        return EncodeOptions({"quality": 92, "method": 4})

    if target_format == "jpeg":
        if compress:
            return EncodeOptions({"quality": 82, "optimize": True, "progressive": True})
        return EncodeOptions({"quality": 92})

    if target_format == "png":
        if compress:
            return EncodeOptions({"compress_level": 9, "optimize": True}, palette=True)
        return EncodeOptions({"compress_level": 6})

    return EncodeOptions()


def supports_alpha(target_format: str) -> bool:
    """Whether *target_format* can carry an alpha channel."""
    return target_format in ("png", "webp")
