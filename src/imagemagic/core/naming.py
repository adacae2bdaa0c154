"""Filename helpers for download responses and archive entries."""

from __future__ import annotations

import re
from collections.abc import Iterable

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9\-_]")
_DASH_RUN_RE = re.compile(r"-+")
_EDGE_DASH_RE = re.compile(r"^-|-$")


def sanitize_stem(stem: str | None, fallback: str) -> str:
    """Reduce *stem* to ``[a-zA-Z0-9-_]`` characters.

    Every other character becomes a dash, dash runs collapse to one, and a
    single leading and trailing dash is stripped.

    Args:
        stem: Name without extension.
        fallback: Returned when nothing usable remains.

    Returns:
        The cleaned stem, or *fallback*.
    """
    if not stem:
        return fallback
    cleaned = _DASH_RUN_RE.sub("-", _UNSAFE_RE.sub("-", stem))
    return _EDGE_DASH_RE.sub("", cleaned) or fallback


def sanitize_basename(filename: str | None, fallback: str) -> str:
    """Strip the extension from *filename* and sanitise the rest.

    >>> sanitize_basename("My Screenshot (2).PNG", "image-1")
    'My-Screenshot-2'
    >>> sanitize_basename(".png", "image-1")
    'image-1'
    """
    raw_base = _EXTENSION_RE.sub("", filename) if filename else ""
    return sanitize_stem(raw_base or fallback, fallback)


def content_disposition(filename: str) -> str:
    """Build an ``attachment`` Content-Disposition header value."""
    return f'attachment; filename="{filename}"'


def unique_names(names: Iterable[str]) -> list[str]:
    """De-duplicate *names* while keeping their order.

    Repeats get ``-2``, ``-3``... inserted before the extension, skipping
    any candidate that is already taken.

    >>> unique_names(["a.png", "a.png", "b.png"])
    ['a.png', 'a-2.png', 'b.png']
    """
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        candidate = name
        if candidate in seen:
            match = _EXTENSION_RE.search(name)
            stem, ext = (name[: match.start()], match.group()) if match else (name, "")
            counter = 2
            while f"{stem}-{counter}{ext}" in seen:
                counter += 1
            candidate = f"{stem}-{counter}{ext}"
        seen.add(candidate)
        result.append(candidate)
    return result
