"""Exception types shared by the conversion and editor code paths.

Messages on :class:`ValidationError` and its subclasses are intended to be
displayed directly to the user; the API layer copies them into the
``{"error": ...}`` response body unchanged.
"""


class ImageMagicError(Exception):
    """Base class for all application errors."""

    status_code = 500


class ValidationError(ImageMagicError):
    """User-friendly validation error.

    Raised when request input fails validation.
    """

    status_code = 400


class PayloadTooLargeError(ValidationError):
    """Too many files, or a single file over the configured size limit."""

    status_code = 413


class FilterError(ValidationError):
    """An editor filter string could not be parsed."""


class ConversionError(ImageMagicError):
    """Pillow failed to decode or encode an image."""
