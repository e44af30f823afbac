"""
Error taxonomy for the archive pipeline.

Each stage raises its own exception type. The pipeline translates them
into a single ArchiveError carrying one of a closed set of kinds, which
is the only thing a caller ever sees.
"""

from enum import Enum


class ArchiveErrorKind(Enum):
    """The failure kinds reported to callers."""
    CONTENT_FETCH_FAILED = "ContentFetchFailed"
    CONTENT_UPLOAD_FAILED = "ContentUploadFailed"
    INVALID_CONFIGURATION = "InvalidConfiguration"


class ArchiveError(Exception):
    """Raised by the pipeline when a request cannot be archived."""

    def __init__(self, kind: ArchiveErrorKind) -> None:
        super().__init__(kind.value)
        self.kind = kind


class FetchError(Exception):
    """Raised when the source cannot be fetched or did not answer 200."""
    pass


class StorageError(Exception):
    """Raised when an object store write fails."""
    pass


class LocationError(Exception):
    """Raised when a public location cannot be composed."""
    pass


class StreamReadError(OSError):
    """
    Raised when reading the relayed body fails.

    An OSError so that SDKs consuming the body as a file see an ordinary
    I/O failure and abort their request.
    """
    pass
