from typing import Optional


class UploaderError(Exception):
    """Base class for errors reported to the user."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidPathError(UploaderError):
    """Raised when a local path or URL-list file is missing or unusable."""


class NetworkError(UploaderError):
    """Raised when a credential or remote content request fails."""


class UploadError(UploaderError):
    """Raised when any put in a concurrent upload batch fails."""
