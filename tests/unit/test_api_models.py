"""Tests for imagemagic.api.models — Pydantic request/response models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from imagemagic.api.models import ConfigResponse, EditSettings, ErrorResponse


class TestEditSettings:
    """Test EditSettings validation and defaults."""

    def test_defaults_are_reset_state(self):
        settings = EditSettings()
        assert settings.rotation == 0
        assert settings.filter == "none"
        assert settings.name == "capture"
        assert settings.format == "png"

    def test_format_normalised(self):
        assert EditSettings(format="JPG").format == "jpeg"
        assert EditSettings(format=" WebP ").format == "webp"

    def test_unsupported_format(self):
        with pytest.raises(ValidationError):
            EditSettings(format="gif")

    def test_invalid_filter(self):
        with pytest.raises(ValidationError, match="Unsupported filter function"):
            EditSettings(filter="blur(4px)")

    def test_blank_filter_becomes_none(self):
        assert EditSettings(filter="  ").filter == "none"

    def test_preset_filter_accepted(self):
        assert EditSettings(filter="hue-rotate(165deg) saturate(120%)").filter.startswith("hue")

    @pytest.mark.parametrize(("rotation", "expected"), [(-90, 270), (630, 270), (0, 0)])
    def test_normalized_rotation(self, rotation, expected):
        assert EditSettings(rotation=rotation).normalized_rotation == expected

    @pytest.mark.parametrize("rotation", ["nan", "inf", "-inf", float("nan")])
    def test_non_finite_rotation_rejected(self, rotation):
        with pytest.raises(ValidationError):
            EditSettings(rotation=rotation)


class TestConfigResponse:
    def test_editor_defaults_factory(self):
        resp = ConfigResponse(
            version="0",
            formats=[],
            accepted_types=[],
            accepted_extensions=[],
            default_target_format="webp",
            max_upload_files=1,
            max_upload_bytes=1,
            filters=[],
            rotation_step=90,
        )
        assert resp.editor_defaults == EditSettings()
        assert resp.default_compress is True


class TestErrorResponse:
    def test_requires_error(self):
        with pytest.raises(ValidationError):
            ErrorResponse()
        assert ErrorResponse(error="x").model_dump() == {"error": "x"}
