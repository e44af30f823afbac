"""
Content archive pipeline.

Contains the domain models, the byte relay, location resolution and the
archiver service.
"""

from .errors import (
    ArchiveError,
    ArchiveErrorKind,
    FetchError,
    LocationError,
    StorageError,
    StreamReadError,
)
from .location import parse_public_url, resolve_location
from .models import (
    ARCHIVE_CACHE_CONTROL,
    PUBLIC_READ_ACL,
    ArchiveRequest,
    ArchiveResult,
    FetchedContent,
    PutObjectCommand,
)
from .pipeline import (
    Archiver,
    ContentFetcher,
    ObjectStore,
    ServiceContext,
    build_put_command,
)
from .relay import RelayStream

__all__ = [
    "ARCHIVE_CACHE_CONTROL",
    "PUBLIC_READ_ACL",
    "ArchiveError",
    "ArchiveErrorKind",
    "ArchiveRequest",
    "ArchiveResult",
    "Archiver",
    "ContentFetcher",
    "FetchError",
    "FetchedContent",
    "LocationError",
    "ObjectStore",
    "PutObjectCommand",
    "RelayStream",
    "ServiceContext",
    "StorageError",
    "StreamReadError",
    "build_put_command",
    "parse_public_url",
    "resolve_location",
]
