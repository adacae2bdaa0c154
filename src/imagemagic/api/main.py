"""Image Magic Pro — FastAPI Application.

This module is the single entry point for the web application.  It defines
the FastAPI ``app`` instance, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
The application is stateless:

- **Conversion** decodes each uploaded file with Pillow and re-encodes it
  in the requested format (:mod:`imagemagic.core.converter`).  One file is
  returned as-is; several files are packed into a zip
  (:mod:`imagemagic.core.archive`).
- **Screenshot editing** runs in the browser on a canvas.  The same render
  (rotation-aware canvas sizing plus CSS filter) is available server-side
  through ``POST /api/editor/export`` (:mod:`imagemagic.core.editor`).
- **Configuration** comes from ``IMAGEMAGIC_*`` environment variables and is
  exposed to the frontend, together with formats and filter presets, via
  ``GET /api/config``.
- **Static assets** (CSS, JS) are served by FastAPI's ``StaticFiles``.

Every error response has the body ``{"error": "<message>"}``.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/``                         Serve the main HTML page
GET       ``/api/config``               Formats, presets, limits, defaults
POST      ``/api/convert``              Convert uploaded files
POST      ``/api/editor/export``        Render and download a screenshot
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    imagemagic

Direct invocation::

    python -m imagemagic.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from imagemagic import __version__
from imagemagic.api.models import (
    ConfigResponse,
    EditSettings,
    ErrorResponse,
    FilterPresetInfo,
    FormatInfo,
)
from imagemagic.core.archive import ARCHIVE_MEDIA_TYPE, ARCHIVE_NAME, build_zip
from imagemagic.core.config import ImageMagicConfig, config
from imagemagic.core.converter import Upload, convert_batch
from imagemagic.core.editor import EDITOR_FORMATS, ROTATION_STEP, EditorExport, export
from imagemagic.core.errors import (
    ConversionError,
    ImageMagicError,
    PayloadTooLargeError,
    ValidationError,
)
from imagemagic.core.filters import FILTER_PRESETS
from imagemagic.core.formats import (
    ACCEPTED_EXTENSIONS,
    ACCEPTED_TYPES,
    DEFAULT_TARGET_FORMAT,
    FORMAT_LABELS,
    MIME_BY_FORMAT,
    SUPPORTED_FORMATS,
    normalize_format,
)
from imagemagic.core.naming import content_disposition

logger = logging.getLogger(__name__)

NO_STORE = "no-store"
CONVERSION_FAILED = "Conversion failed."
RENDER_FAILED = "Could not render pasted image."

ERROR_RESPONSES: dict[int | str, dict] = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    413: {"model": ErrorResponse, "description": "Upload too large"},
    500: {"model": ErrorResponse, "description": "Conversion failed"},
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log the effective limits on startup."""
    cfg: ImageMagicConfig = app.state.config
    logger.info(
        "Image Magic Pro %s ready (max %d files, %d bytes per file).",
        __version__,
        cfg.max_upload_files,
        cfg.max_upload_bytes,
    )
    yield
    logger.info("Image Magic Pro shutting down.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Image Magic Pro",
    description="Batch image conversion and screenshot editing.",
    version=__version__,
    lifespan=lifespan,
)

# Route handlers read configuration from app.state so tests can substitute
# their own instance.
app.state.config = config

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Source-Width", "X-Source-Height"],
)

app.mount("/static", StaticFiles(directory=str(config.static_dir)), name="static")


# ---------------------------------------------------------------------------
# Error handlers — every failure is reported as {"error": message}.
# ---------------------------------------------------------------------------


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@app.exception_handler(ImageMagicError)
async def handle_app_error(request: Request, exc: ImageMagicError) -> JSONResponse:
    """Translate application errors into JSON error responses.

    Validation messages are shown to the user verbatim; anything else is
    reported with the generic conversion failure message.
    """
    if isinstance(exc, ValidationError):
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
        return _error(str(exc), exc.status_code)
    logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
    return _error(CONVERSION_FAILED, exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(str(exc.detail), exc.status_code)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed form fields as a 400 with the first problem."""
    first = exc.errors()[0]
    field = first["loc"][-1] if first.get("loc") else "input"
    logger.warning("Rejected %s %s: invalid %s", request.method, request.url.path, field)
    return _error(f"Invalid {field}: {first['msg']}", 400)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    """Serve the main application HTML page.

    All dynamic data is fetched by the frontend via ``GET /api/config``.

    Raises:
        HTTPException: 404 if ``index.html`` is not found.
    """
    index_path = app.state.config.templates_dir / "index.html"
    if index_path.exists():
        return HTMLResponse(content=index_path.read_text(encoding="utf-8"))
    raise HTTPException(status_code=404, detail="index.html not found")


@app.get("/api/config", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Return formats, filter presets, limits and defaults for the frontend."""
    cfg: ImageMagicConfig = app.state.config
    return ConfigResponse(
        version=__version__,
        formats=[
            FormatInfo(id=fmt, label=FORMAT_LABELS[fmt], mime=MIME_BY_FORMAT[fmt])
            for fmt in SUPPORTED_FORMATS
        ],
        accepted_types=list(ACCEPTED_TYPES),
        accepted_extensions=list(ACCEPTED_EXTENSIONS),
        default_target_format=DEFAULT_TARGET_FORMAT,
        max_upload_files=cfg.max_upload_files,
        max_upload_bytes=cfg.max_upload_bytes,
        filters=[FilterPresetInfo(name=p.name, value=p.value) for p in FILTER_PRESETS],
        editor_defaults=EditSettings(),
        rotation_step=ROTATION_STEP,
    )


async def _read_uploads(files: list[UploadFile], cfg: ImageMagicConfig) -> list[Upload]:
    """Read every upload into memory, enforcing the configured limits."""
    if len(files) > cfg.max_upload_files:
        raise PayloadTooLargeError(
            f"Too many files. Upload at most {cfg.max_upload_files} at a time."
        )
    uploads: list[Upload] = []
    for file in files:
        data = await file.read()
        if len(data) > cfg.max_upload_bytes:
            raise PayloadTooLargeError(f"{file.filename or 'File'} is too large.")
        uploads.append(Upload(data=data, filename=file.filename))
    return uploads


@app.post("/api/convert", responses=ERROR_RESPONSES)
async def convert(
    files: list[UploadFile] | None = File(default=None),
    target_format: str | None = Form(default=None, alias="targetFormat"),
    compress: str | None = Form(default=None),
) -> Response:
    """Convert uploaded images to a target format.

    This endpoint:

    1. Rejects requests without files or with an unsupported format (400).
    2. Enforces the file count and per-file size limits (413).
    3. Converts every file concurrently.
    4. Returns the single converted file, or a zip of all of them.

    Args:
        files: Uploaded images (multipart field ``files``, repeatable).
        target_format: ``webp`` (default), ``jpeg`` or ``png``.
        compress: The string ``"true"`` selects the size-optimised profile.

    Returns:
        The converted image or ``converted-images.zip`` as an attachment.
    """
    cfg: ImageMagicConfig = app.state.config

    if not files:
        raise ValidationError("No files uploaded.")
    fmt = normalize_format(target_format)
    compress_flag = compress == "true"
    uploads = await _read_uploads(files, cfg)

    try:
        items = await convert_batch(uploads, fmt, compress_flag, cfg.jpeg_background_rgb)
        if len(items) == 1:
            content, media_type, filename = items[0].data, items[0].media_type, items[0].filename
        else:
            content, media_type, filename = build_zip(items), ARCHIVE_MEDIA_TYPE, ARCHIVE_NAME
    except Exception:
        logger.exception("Image conversion failed")
        return _error(CONVERSION_FAILED, 500)

    logger.info("Converted %d file(s) to %s (compress=%s)", len(items), fmt, compress_flag)
    return Response(
        content=content,
        media_type=media_type,
        headers={
            "Content-Disposition": content_disposition(filename),
            "Cache-Control": NO_STORE,
        },
    )


@app.post("/api/editor/export", responses=ERROR_RESPONSES)
async def export_screenshot(
    file: UploadFile | None = File(default=None),
    rotation: float = Form(default=0),
    filter: str = Form(default="none"),
    name: str = Form(default="capture"),
    format: str = Form(default="png"),
) -> Response:
    """Render an edited screenshot and return it as a download.

    Applies the CSS filter, then the clockwise rotation on a canvas sized to
    the rotated bounding box, and encodes the result.

    Args:
        file: The pasted image (multipart field ``file``).
        rotation: Clockwise rotation in degrees.
        filter: CSS filter list, or ``none``.
        name: Download filename without extension.
        format: ``png`` (default), ``jpeg`` or ``webp``.

    Returns:
        The rendered image as an attachment, with ``X-Source-Width`` and
        ``X-Source-Height`` headers giving the pasted image's size.
    """
    cfg: ImageMagicConfig = app.state.config

    if file is None:
        raise ValidationError("No image pasted.")
    try:
        settings = EditSettings(rotation=rotation, filter=filter, name=name, format=format)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = first["loc"][0] if first.get("loc") else "input"
        if field == "format":
            raise ValidationError(
                f"Unsupported format. Use one of: {', '.join(EDITOR_FORMATS)}."
            ) from e
        raise ValidationError(f"Invalid {field}: {first['msg']}") from e

    data = await file.read()
    if len(data) > cfg.max_upload_bytes:
        raise PayloadTooLargeError(f"{file.filename or 'Image'} is too large.")

    try:
        result = await _run_export(data, settings, cfg)
    except ConversionError as e:
        raise ValidationError(RENDER_FAILED) from e

    return Response(
        content=result.data,
        media_type=result.media_type,
        headers={
            "Content-Disposition": content_disposition(result.filename),
            "Cache-Control": NO_STORE,
            "X-Source-Width": str(result.source_width),
            "X-Source-Height": str(result.source_height),
        },
    )


async def _run_export(data: bytes, settings: EditSettings, cfg: ImageMagicConfig) -> EditorExport:
    return await run_in_threadpool(
        export,
        data,
        rotation=settings.normalized_rotation,
        filter=settings.filter,
        name=settings.name,
        fmt=settings.format,
        background=cfg.jpeg_background_rgb,
    )


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~imagemagic.core.config.config`
    (``IMAGEMAGIC_SERVER_HOST``, ``IMAGEMAGIC_SERVER_PORT``,
    ``IMAGEMAGIC_LOG_LEVEL``).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``imagemagic`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "imagemagic.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
