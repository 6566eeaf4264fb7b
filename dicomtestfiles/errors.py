"""
Exceptions raised while resolving test files.
"""

from typing import Optional


class DicomTestFilesError(Exception):
    """Base class for all errors raised by dicomtestfiles."""
    pass


class NotFoundError(DicomTestFilesError):
    """
    Raised when an identifier is not in the checksum manifest.

    If you are sure the file exists in the archive, the manifest may need
    to be regenerated.
    """

    def __init__(self, identifier: str, reason: Optional[str] = None):
        self.identifier = identifier
        message = f"Unknown test file: '{identifier}'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class FetchError(DicomTestFilesError):
    """Raised when a file cannot be downloaded. Safe to retry."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to download {url}: {reason}")


class IntegrityError(DicomTestFilesError):
    """
    Raised when the checksum of file contents does not match the manifest.

    Never retried automatically: a repeated mismatch means the archive entry
    changed or was tampered with.
    """

    def __init__(self, identifier: str, expected: str, actual: str):
        self.identifier = identifier
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for '{identifier}': expected {expected}, got {actual}"
        )
