"""Errors surfaced by the generation workflow and the gallery."""

from __future__ import annotations

from typing import Optional


class GalleryAppError(Exception):
    """Base class for recoverable, user-visible errors."""


class EmptyPrompt(GalleryAppError):
    """Raised when the prompt is empty or whitespace only."""

    def __init__(self) -> None:
        super().__init__("Prompt is empty")


class MissingCredential(GalleryAppError):
    """Raised when no API key is configured."""

    def __init__(self) -> None:
        super().__init__("API key is not set")


class GenerationFailed(GalleryAppError):
    """Transport, authorization or provider-side failure of a generation call."""

    def __init__(self, cause: object) -> None:
        self.cause = cause
        super().__init__(f"Image generation failed: {cause}")


class InvalidPosition(GalleryAppError, IndexError):
    """Raised when a gallery position is outside the current sequence."""

    def __init__(self, position: int, length: int) -> None:
        self.position = position
        self.length = length
        super().__init__(f"Position {position} is out of range for {length} record(s)")


class DownloadFailed(GalleryAppError):
    """Raised when an image cannot be saved locally."""

    def __init__(self, url: str, cause: Optional[object] = None) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to download {url}: {cause}")


class PersistenceFailed(GalleryAppError):
    """Raised when the gallery or the API key cannot be written to disk."""

    def __init__(self, cause: object) -> None:
        self.cause = cause
        super().__init__(f"Failed to save local data: {cause}")
