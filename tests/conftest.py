"""Shared pytest fixtures for Image Magic tests."""

from __future__ import annotations

from collections.abc import Callable
from io import BytesIO

import pytest
from PIL import Image

from imagemagic.core.config import ImageMagicConfig


def make_image_bytes(
    fmt: str = "PNG",
    size: tuple[int, int] = (40, 20),
    mode: str = "RGB",
    color=(200, 30, 30),
    exif_orientation: int | None = None,
) -> bytes:
    """Encode a solid-colour test image.

    Args:
        fmt: Pillow format name.
        size: ``(width, height)``.
        mode: Pillow mode of the generated image.
        color: Fill colour for *mode*.
        exif_orientation: Optional EXIF orientation tag to embed.

    Returns:
        Encoded image bytes.
    """
    img = Image.new(mode, size, color)
    buffer = BytesIO()
    kwargs = {}
    if exif_orientation is not None:
        exif = Image.Exif()
        exif[0x0112] = exif_orientation
        kwargs["exif"] = exif
    img.save(buffer, format=fmt, **kwargs)
    return buffer.getvalue()


def open_bytes(data: bytes) -> Image.Image:
    """Decode bytes produced by the code under test."""
    img = Image.open(BytesIO(data))
    img.load()
    return img


@pytest.fixture
def test_config() -> ImageMagicConfig:
    """Configuration with small limits and no .env influence.

    Returns:
        ImageMagicConfig instance for testing
    """
    return ImageMagicConfig(
        _env_file=None,
        max_upload_files=5,
        max_upload_bytes=50_000,
        jpeg_background="#ffffff",
    )


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    """Return :func:`make_image_bytes` for tests that need custom images."""
    return make_image_bytes


@pytest.fixture
def decode() -> Callable[[bytes], Image.Image]:
    """Return :func:`open_bytes` for decoding produced output."""
    return open_bytes


@pytest.fixture
def png_bytes() -> bytes:
    """A 40x20 opaque red PNG."""
    return make_image_bytes("PNG")


@pytest.fixture
def transparent_png_bytes() -> bytes:
    """A 40x20 fully transparent PNG."""
    return make_image_bytes("PNG", mode="RGBA", color=(0, 0, 0, 0))


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A 40x20 opaque red JPEG."""
    return make_image_bytes("JPEG")


@pytest.fixture
def test_client(test_config: ImageMagicConfig):
    """FastAPI TestClient running against the test configuration.

    The application's configuration is swapped on ``app.state`` for the
    duration of the test and restored afterwards.
    """
    from fastapi.testclient import TestClient

    from imagemagic.api.main import app

    original = app.state.config
    app.state.config = test_config
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.state.config = original
