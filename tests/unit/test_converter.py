"""Tests for imagemagic.core.converter — Pillow conversion.

Tests cover:
- Output format and dimensions for every target.
- EXIF orientation being applied.
- Alpha handling (kept for PNG/WebP, flattened for JPEG).
- Palette quantisation for compressed PNG.
- Error wrapping for undecodable input.
- Batch conversion order and naming.
"""

from __future__ import annotations

import asyncio

import pytest
from PIL import Image

from imagemagic.core.converter import (
    Upload,
    convert_batch,
    convert_image,
    convert_upload,
    has_alpha,
    prepare_mode,
)
from imagemagic.core.errors import ConversionError


class TestConvertImage:
    """Test single-image conversion."""

    @pytest.mark.parametrize(
        ("target", "pil_format"),
        [("webp", "WEBP"), ("jpeg", "JPEG"), ("png", "PNG")],
    )
    @pytest.mark.parametrize("compress", [True, False])
    def test_output_format(self, png_bytes, decode, target, pil_format, compress):
        out = decode(convert_image(png_bytes, target, compress))
        assert out.format == pil_format
        assert out.size == (40, 20)

    def test_exif_orientation_applied(self, image_factory, decode):
        """Orientation 6 (rotate 90 CW) swaps the stored dimensions."""
        data = image_factory("JPEG", size=(40, 20), exif_orientation=6)
        out = decode(convert_image(data, "png"))
        assert out.size == (20, 40)

    def test_png_keeps_alpha(self, transparent_png_bytes, decode):
        out = decode(convert_image(transparent_png_bytes, "png"))
        assert out.mode == "RGBA"
        assert out.getpixel((0, 0))[3] == 0

    def test_webp_keeps_alpha(self, transparent_png_bytes, decode):
        out = decode(convert_image(transparent_png_bytes, "webp", compress=True))
        assert out.mode == "RGBA"
        assert out.getpixel((0, 0))[3] == 0

    def test_jpeg_flattens_onto_background(self, transparent_png_bytes, decode):
        out = decode(convert_image(transparent_png_bytes, "jpeg", background=(255, 255, 255)))
        assert out.mode == "RGB"
        r, g, b = out.getpixel((5, 5))
        assert min(r, g, b) >= 250

    def test_jpeg_custom_background(self, transparent_png_bytes, decode):
        out = decode(convert_image(transparent_png_bytes, "jpeg", background=(0, 0, 0)))
        assert max(out.getpixel((5, 5))) <= 5

    def test_png_compress_is_palette(self, png_bytes, decode):
        out = decode(convert_image(png_bytes, "png", compress=True))
        assert out.mode == "P"

    def test_png_compress_with_alpha(self, transparent_png_bytes, decode):
        """RGBA input is quantised with an alpha-aware method."""
        out = decode(convert_image(transparent_png_bytes, "png", compress=True))
        assert out.mode == "P"
        assert out.convert("RGBA").getpixel((0, 0))[3] == 0

    def test_webp_lossless_preserves_pixels(self, png_bytes, decode):
        out = decode(convert_image(png_bytes, "webp", compress=True))
        assert out.convert("RGB").getpixel((10, 10)) == (200, 30, 30)

    def test_undecodable_raises(self):
        with pytest.raises(ConversionError):
            convert_image(b"definitely not an image", "png")

    def test_grayscale_source(self, image_factory, decode):
        data = image_factory("PNG", mode="L", color=128)
        out = decode(convert_image(data, "jpeg"))
        assert out.mode == "RGB"


class TestModeHelpers:
    """Test alpha detection and mode preparation."""

    def test_has_alpha(self):
        assert has_alpha(Image.new("RGBA", (2, 2)))
        assert has_alpha(Image.new("LA", (2, 2)))
        assert not has_alpha(Image.new("RGB", (2, 2)))

    def test_palette_with_transparency(self):
        img = Image.new("P", (2, 2))
        img.info["transparency"] = 0
        assert has_alpha(img)

    def test_prepare_mode_cmyk_to_rgb(self):
        img = Image.new("CMYK", (2, 2))
        assert prepare_mode(img, "webp").mode == "RGB"

    def test_prepare_mode_rgb_unchanged(self):
        img = Image.new("RGB", (2, 2))
        assert prepare_mode(img, "png") is img


class TestConvertUpload:
    """Test per-upload naming."""

    def test_output_name_from_upload(self, png_bytes):
        item = convert_upload(Upload(png_bytes, "Team Photo.png"), 0, "webp")
        assert item.filename == "Team-Photo.webp"
        assert item.media_type == "image/webp"

    def test_fallback_name_uses_index(self, png_bytes):
        item = convert_upload(Upload(png_bytes, None), 2, "jpeg")
        assert item.filename == "image-3.jpeg"


class TestConvertBatch:
    """Test concurrent batch conversion."""

    def test_order_preserved(self, image_factory):
        uploads = [
            Upload(image_factory("PNG", size=(10 + i, 10)), f"file{i}.png") for i in range(4)
        ]
        items = asyncio.run(convert_batch(uploads, "png"))
        assert [item.filename for item in items] == [
            "file0.png",
            "file1.png",
            "file2.png",
            "file3.png",
        ]

    def test_failure_propagates(self, png_bytes):
        uploads = [Upload(png_bytes, "good.png"), Upload(b"broken", "bad.png")]
        with pytest.raises(ConversionError):
            asyncio.run(convert_batch(uploads, "webp"))
