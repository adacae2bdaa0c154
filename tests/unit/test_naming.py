"""Tests for imagemagic.core.naming — download and archive filenames."""

from __future__ import annotations

import pytest

from imagemagic.core.naming import (
    content_disposition,
    sanitize_basename,
    sanitize_stem,
    unique_names,
)


class TestSanitizeBasename:
    """Test extension stripping and character cleaning."""

    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("photo.png", "photo"),
            ("My Screenshot (2).PNG", "My-Screenshot-2"),
            ("archive.tar.gz", "archive-tar"),
            ("__init__.jpg", "__init__"),
            ("résumé.webp", "r-sum"),
            ("--edge--.png", "edge"),
        ],
    )
    def test_cleans_names(self, filename, expected):
        assert sanitize_basename(filename, "image-1") == expected

    def test_none_uses_fallback(self):
        assert sanitize_basename(None, "image-3") == "image-3"

    def test_extension_only_uses_fallback(self):
        """'.png' strips to nothing and falls back."""
        assert sanitize_basename(".png", "image-1") == "image-1"

    def test_all_symbols_uses_fallback(self):
        assert sanitize_basename("!!!.png", "image-2") == "image-2"


class TestSanitizeStem:
    """Test stem cleaning without extension handling."""

    def test_keeps_dots_out(self):
        assert sanitize_stem("v1.2 final", "capture") == "v1-2-final"

    def test_empty_uses_fallback(self):
        assert sanitize_stem("", "capture") == "capture"

    def test_only_one_edge_dash_is_stripped(self):
        """Runs collapse first, so a single edge dash remains to strip."""
        assert sanitize_stem("  name  ", "capture") == "name"


class TestContentDisposition:
    def test_attachment_header(self):
        assert content_disposition("a.webp") == 'attachment; filename="a.webp"'


class TestUniqueNames:
    """Test archive entry de-duplication."""

    def test_no_duplicates_unchanged(self):
        assert unique_names(["a.png", "b.png"]) == ["a.png", "b.png"]

    def test_duplicates_numbered(self):
        assert unique_names(["a.webp", "a.webp", "a.webp"]) == [
            "a.webp",
            "a-2.webp",
            "a-3.webp",
        ]

    def test_skips_taken_candidate(self):
        assert unique_names(["a-2.png", "a.png", "a.png"]) == ["a-2.png", "a.png", "a-3.png"]

    def test_name_without_extension(self):
        assert unique_names(["README", "README"]) == ["README", "README-2"]
