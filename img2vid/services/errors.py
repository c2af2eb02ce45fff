"""Error kinds surfaced by the image-to-video flow."""

from typing import Optional


class VideoGenerationError(Exception):
    """Base class for every failure the UI shows to the user."""


class ValidationError(VideoGenerationError):
    """Submit attempted without an image or without a prompt."""


class UnsupportedFileTypeError(VideoGenerationError):
    """Selected file is not an image."""


class SessionBusyError(VideoGenerationError):
    """A generation is already outstanding for this session."""


class MissingCredentialError(VideoGenerationError):
    pass


class EncodingError(VideoGenerationError):
    pass


class MissingResultError(VideoGenerationError):
    """Completed operation carried no generated video reference."""


class DownloadError(VideoGenerationError):
    def __init__(self, message: str, status_code: Optional[int] = None, status_text: str = ""):
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(message)


class OperationStatusError(VideoGenerationError):
    """A single status query failed. Only raised inside the poll loop."""
