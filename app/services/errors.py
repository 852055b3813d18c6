"""Errors raised by the file service.

Each error carries the HTTP status and message it is reported with, so the
web layer can render it without knowing the individual cases.
"""


class FileServiceError(Exception):
    """Base class for all file service errors."""

    status_code = 500
    message = "Internal error"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class InvalidName(FileServiceError):
    """Name could escape the base directory."""

    status_code = 400
    message = "Invalid filename"


class NotFound(FileServiceError):
    """No stored file with that name."""

    status_code = 404
    message = "Not found"


class NoFileProvided(FileServiceError):
    """Upload request without a file payload."""

    status_code = 400
    message = "No file uploaded"


class StorageUnavailable(FileServiceError):
    """Underlying I/O failure while listing, reading, writing or deleting."""

    status_code = 500
    message = "Storage unavailable"
