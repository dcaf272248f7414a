"""Conversion errors. Only a few carry text meant for the end user."""
from typing import Optional

GENERIC_FAILURE_MESSAGE = "Something went wrong."


class ConversionError(Exception):
    """Base error for sticker conversion."""

    user_message = GENERIC_FAILURE_MESSAGE


class NotAnImageError(ConversionError):
    """Raised when the input cannot be decoded as any known still-image format."""

    user_message = "File is not an image."


class TooLargeError(ConversionError):
    """Raised when the declared input size exceeds the ceiling."""

    def __init__(self, declared_size: int, limit: int):
        super().__init__(f"Declared size {declared_size} exceeds limit {limit}")
        self.declared_size = declared_size
        self.limit = limit

    @property
    def user_message(self) -> str:
        if self.limit >= 1024 * 1024:
            return f"File is too large (max {self.limit // (1024 * 1024)} MB)."
        return f"File is too large (max {self.limit} bytes)."


class ExternalToolError(ConversionError):
    """Raised when ffmpeg cannot be started or exits with a non-zero status."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class MediaIOError(ConversionError):
    """Raised when downloading the source or handling a temporary file fails."""


class EncoderUnsupportedError(Exception):
    """The WebP encoder cannot handle this (already decoded) image.

    Not a ConversionError: the still-image transcoder catches it and falls back to PNG.
    """
