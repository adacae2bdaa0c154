"""Image format conversion built on Pillow.

A conversion decodes the uploaded bytes, applies the EXIF orientation tag so
the output is upright, normalises the colour mode for the target encoder and
re-encodes with the profile from :func:`~imagemagic.core.formats.get_format_options`.

Batches are converted concurrently: each file is an independent task run in
Starlette's thread pool, so the event loop keeps serving other requests while
Pillow works.  There is no ordering dependency between files and no retry;
the first failure fails the whole batch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from imagemagic.core.errors import ConversionError
from imagemagic.core.formats import (
    MIME_BY_FORMAT,
    PALETTE_COLOURS,
    PIL_FORMAT,
    get_format_options,
    supports_alpha,
)
from imagemagic.core.naming import sanitize_basename

logger = logging.getLogger(__name__)

DEFAULT_BACKGROUND: tuple[int, int, int] = (255, 255, 255)


@dataclass(frozen=True)
class ConvertedItem:
    """One converted file ready to be sent or archived."""

    filename: str
    data: bytes
    media_type: str


@dataclass(frozen=True)
class Upload:
    """Raw bytes and client-side name of one uploaded file."""

    data: bytes
    filename: str | None = None


def has_alpha(image: Image.Image) -> bool:
    """Whether *image* carries transparency information."""
    if image.mode in ("RGBA", "LA", "PA", "RGBa", "La"):
        return True
    return image.mode == "P" and "transparency" in image.info


def prepare_mode(
    image: Image.Image,
    target_format: str,
    background: tuple[int, int, int] = DEFAULT_BACKGROUND,
) -> Image.Image:
    """Convert *image* into a mode the target encoder accepts.

    Images with transparency stay RGBA for formats that support alpha and
    are composited onto *background* otherwise.  Everything else becomes RGB.
    """
    if has_alpha(image):
        rgba = image.convert("RGBA")
        if supports_alpha(target_format):
            return rgba
        flattened = Image.new("RGB", rgba.size, background)
        flattened.paste(rgba, mask=rgba.getchannel("A"))
        return flattened
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def encode_image(
    image: Image.Image,
    target_format: str,
    compress: bool = False,
    background: tuple[int, int, int] = DEFAULT_BACKGROUND,
) -> bytes:
    """Encode an already-decoded image into *target_format*.

    Raises:
        ConversionError: If Pillow cannot encode the image.
    """
    options = get_format_options(target_format, compress)
    prepared = prepare_mode(image, target_format, background)

    if options.palette:
        method = Image.Quantize.FASTOCTREE if prepared.mode == "RGBA" else Image.Quantize.MEDIANCUT
        prepared = prepared.quantize(colors=PALETTE_COLOURS, method=method)

    buffer = BytesIO()
    try:
        prepared.save(buffer, format=PIL_FORMAT[target_format], **options.save_kwargs)
    except (OSError, ValueError, KeyError) as e:
        raise ConversionError(f"Could not encode image as {target_format}: {e}") from e
    return buffer.getvalue()


def open_image(data: bytes) -> Image.Image:
    """Decode *data* and apply its EXIF orientation.

    Raises:
        ConversionError: If the bytes are not a readable image.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise ConversionError(f"Could not decode image: {e}") from e


def convert_image(
    data: bytes,
    target_format: str,
    compress: bool = False,
    *,
    background: tuple[int, int, int] = DEFAULT_BACKGROUND,
) -> bytes:
    """Convert raw image bytes to *target_format*.

    Args:
        data: Encoded source image (any format Pillow can read).
        target_format: Canonical format id (``webp``, ``jpeg`` or ``png``).
        compress: Use the size-optimised encoder profile.
        background: Flatten colour for transparent pixels in JPEG output.

    Returns:
        The encoded output bytes.

    Raises:
        ConversionError: If decoding or encoding fails.
    """
    image = open_image(data)
    return encode_image(image, target_format, compress, background)


def convert_upload(
    upload: Upload,
    index: int,
    target_format: str,
    compress: bool = False,
    background: tuple[int, int, int] = DEFAULT_BACKGROUND,
) -> ConvertedItem:
    """Convert one upload and derive its download name.

    Unnamed or unnameable files fall back to ``image-<index + 1>``.
    """
    safe_base = sanitize_basename(upload.filename, f"image-{index + 1}")
    output = convert_image(upload.data, target_format, compress, background=background)
    logger.debug(
        "Converted %s -> %s.%s (%d -> %d bytes)",
        upload.filename,
        safe_base,
        target_format,
        len(upload.data),
        len(output),
    )
    return ConvertedItem(
        filename=f"{safe_base}.{target_format}",
        data=output,
        media_type=MIME_BY_FORMAT[target_format],
    )


async def convert_batch(
    uploads: Sequence[Upload],
    target_format: str,
    compress: bool = False,
    background: tuple[int, int, int] = DEFAULT_BACKGROUND,
) -> list[ConvertedItem]:
    """Convert every upload concurrently.

    Returns:
        Converted items in the same order as *uploads*.

    Raises:
        ConversionError: From the first file that fails.
    """
    tasks = [
        run_in_threadpool(convert_upload, upload, index, target_format, compress, background)
        for index, upload in enumerate(uploads)
    ]
    return list(await asyncio.gather(*tasks))
