"""Pydantic request and response models for the Image Magic API.

File payloads travel as multipart form data, so the request models here
describe the non-file form fields; FastAPI validates them before the route
handler runs.

Models
------
EditSettings
    Form fields of ``POST /api/editor/export`` — rotation, filter, name and
    output format of an edited screenshot.  Its defaults are the editor's
    reset state.
FormatInfo, FilterPresetInfo, ConfigResponse
    Response of ``GET /api/config``.
ErrorResponse
    Body of every error response.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from imagemagic.core.editor import DEFAULT_FORMAT, DEFAULT_NAME, normalize_rotation
from imagemagic.core.errors import FilterError
from imagemagic.core.filters import NO_FILTER, parse_filter

EditorFormat = Literal["png", "jpeg", "webp"]


class EditSettings(BaseModel):
    """Editor state sent alongside a pasted screenshot.

    Attributes:
        rotation: Clockwise rotation in degrees.  Any finite value is
            accepted; it is normalised into ``[0, 360)``.
        filter: CSS filter list, e.g. ``"sepia(80%) saturate(120%)"``.
        name: Download filename without extension.
        format: Output format.
    """

    rotation: float = Field(
        default=0,
        allow_inf_nan=False,
        description="Clockwise rotation in degrees.",
    )
    filter: str = Field(
        default=NO_FILTER,
        description="CSS filter list, or 'none'.",
    )
    name: str = Field(
        default=DEFAULT_NAME,
        description="Download filename without extension.",
    )
    format: EditorFormat = Field(
        default=DEFAULT_FORMAT,
        description="Output format: png, jpeg or webp.",
    )

    @field_validator("format", mode="before")
    @classmethod
    def _lower_format(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return "jpeg" if value == "jpg" else value
        return value

    @field_validator("filter")
    @classmethod
    def _check_filter(cls, value: str) -> str:
        try:
            parse_filter(value)
        except FilterError as e:
            raise ValueError(str(e)) from e
        return value.strip() or NO_FILTER

    @property
    def normalized_rotation(self) -> float:
        return normalize_rotation(self.rotation)


class FormatInfo(BaseModel):
    """One selectable output format."""

    id: str
    label: str
    mime: str


class FilterPresetInfo(BaseModel):
    """One editor filter preset."""

    name: str
    value: str


class ConfigResponse(BaseModel):
    """Response body of ``GET /api/config``.

    Attributes:
        version: Application version.
        formats: Output formats for both features.
        accepted_types: MIME types the converter accepts.
        accepted_extensions: File extensions the converter accepts.
        default_target_format: Initial converter format.
        default_compress: Initial state of the compress toggle.
        max_upload_files: Files allowed per conversion request.
        max_upload_bytes: Per-file size limit.
        filters: Editor filter presets.
        editor_defaults: The editor's reset state.
        rotation_step: Degrees per rotate-left / rotate-right click.
    """

    version: str
    formats: list[FormatInfo]
    accepted_types: list[str]
    accepted_extensions: list[str]
    default_target_format: str
    default_compress: bool = True
    max_upload_files: int
    max_upload_bytes: int
    filters: list[FilterPresetInfo]
    editor_defaults: EditSettings = Field(default_factory=EditSettings)
    rotation_step: int


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Message suitable for display to the user.")
