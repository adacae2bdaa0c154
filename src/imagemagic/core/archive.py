"""Zip packaging for multi-file conversion results."""

from __future__ import annotations

import zipfile
from collections.abc import Sequence
from io import BytesIO

from imagemagic.core.converter import ConvertedItem
from imagemagic.core.naming import unique_names

ARCHIVE_NAME = "converted-images.zip"
ARCHIVE_MEDIA_TYPE = "application/zip"


def build_zip(items: Sequence[ConvertedItem]) -> bytes:
    """Pack *items* into a DEFLATE-compressed zip archive.

    Entry names are de-duplicated so two uploads that sanitise to the same
    name (``a.png`` and ``a.jpg`` converted to WebP) both survive.

    Args:
        items: Converted files, in archive order.

    Returns:
        The zip archive bytes.
    """
    buffer = BytesIO()
    names = unique_names(item.filename for item in items)
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, item in zip(names, items):
            archive.writestr(name, item.data)
    return buffer.getvalue()
