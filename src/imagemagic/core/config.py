"""Configuration management for Image Magic Pro.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the IMAGEMAGIC_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (IMAGEMAGIC_* prefix)
2. .env file in the project root
3. Default values defined in ImageMagicConfig

Example .env file:
    IMAGEMAGIC_SERVER_PORT=8080
    IMAGEMAGIC_MAX_UPLOAD_FILES=20
    IMAGEMAGIC_MAX_UPLOAD_BYTES=10485760
    IMAGEMAGIC_JPEG_BACKGROUND=#000000

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Route handlers read it through ``app.state.config`` so tests can swap in a
custom instance without touching the environment.

Usage Example
-------------
    from imagemagic.core.config import config

    print(config.server_port)
    print(config.max_upload_bytes)
"""

from pathlib import Path
from typing import Literal

from PIL import ImageColor
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class ImageMagicConfig(BaseSettings):
    """Main configuration for Image Magic Pro.

    Attributes
    ----------
    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]
            Root logging level applied by ``main()``
        cors_origins : list[str]
            Origins allowed by the CORS middleware

    Paths:
        static_dir : Path
            Directory mounted at ``/static`` (CSS and JS)
        templates_dir : Path
            Directory holding ``index.html``

    Conversion Limits:
        max_upload_files : int
            Maximum number of files in one conversion request
        max_upload_bytes : int
            Maximum size of a single uploaded file

    Encoding:
        jpeg_background : str
            Colour that transparent pixels are flattened onto when the
            output format has no alpha channel (JPEG)

    Examples
    --------
        >>> custom = ImageMagicConfig(max_upload_files=5, _env_file=None)
        >>> custom.max_upload_files
        5
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IMAGEMAGIC_",
        case_sensitive=False,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level used when the server is launched via main()",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API",
    )

    # Paths
    static_dir: Path = Field(
        default=PACKAGE_DIR / "static",
        description="Directory of static frontend assets",
    )
    templates_dir: Path = Field(
        default=PACKAGE_DIR / "templates",
        description="Directory containing index.html",
    )

    # Conversion limits
    max_upload_files: int = Field(
        default=50,
        description="Maximum number of files accepted per conversion request",
        ge=1,
    )
    max_upload_bytes: int = Field(
        default=25 * 1024 * 1024,
        description="Maximum size in bytes of a single uploaded file",
        ge=1,
    )

    # Encoding
    jpeg_background: str = Field(
        default="#ffffff",
        description="Flatten colour for transparent pixels in JPEG output",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("jpeg_background")
    @classmethod
    def _check_colour(cls, value: str) -> str:
        try:
            ImageColor.getrgb(value)
        except ValueError as e:
            raise ValueError(f"jpeg_background is not a colour: {value!r}") from e
        return value

    @property
    def jpeg_background_rgb(self) -> tuple[int, int, int]:
        """The JPEG flatten colour as an RGB tuple."""
        return ImageColor.getrgb(self.jpeg_background)[:3]


# Global configuration instance
config = ImageMagicConfig()
