"""
The archive pipeline: fetch, relay, upload, resolve.

Stages run strictly in that order and the first failure ends the
request. There are no retries and no cleanup of a failed upload: a
single streamed PUT either lands completely or not at all.

The pipeline only knows its collaborators through the protocols below.
Concrete implementations live in the infrastructure package.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncContextManager, Optional, Protocol

from .errors import (
    ArchiveError,
    ArchiveErrorKind,
    FetchError,
    LocationError,
    StorageError,
)
from .location import resolve_location
from .models import (
    ARCHIVE_CACHE_CONTROL,
    PUBLIC_READ_ACL,
    ArchiveRequest,
    ArchiveResult,
    FetchedContent,
    PutObjectCommand,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ContentFetcher(Protocol):
    """
    Interface for fetching remote content as a live stream.

    The returned context manager raises FetchError on entry if the source
    cannot be reached or does not answer 200, and releases the connection
    on exit.
    """

    def fetch(self, source: str) -> AsyncContextManager[FetchedContent]:
        ...


class ObjectStore(Protocol):
    """Interface for streamed object writes. Raises StorageError on failure."""

    async def put_object(self, command: PutObjectCommand) -> None:
        ...


# ---------------------------------------------------------------------------
# Service context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ServiceContext:
    """
    Process-wide collaborators and configuration.

    Built once at startup and shared read-only by every request. Both
    clients must be safe for concurrent use.
    """
    fetcher: ContentFetcher
    store: ObjectStore
    bucket_name: str
    bearer_token: str
    public_url: str


def build_put_command(
    bucket: str,
    request: ArchiveRequest,
    content: FetchedContent,
    fetched_at: Optional[datetime] = None,
) -> PutObjectCommand:
    """
    Describe the PUT for a fetched source.

    The ACL is public-read regardless of `request.public`. Metadata holds
    exactly the source URL and the RFC 3339 archive time.
    """
    if fetched_at is None:
        fetched_at = datetime.now(timezone.utc)

    return PutObjectCommand(
        bucket=bucket,
        key=request.suffix,
        body=content.stream,
        acl=PUBLIC_READ_ACL,
        cache_control=ARCHIVE_CACHE_CONTROL,
        content_length=content.content_length,
        content_type=content.content_type,
        metadata={
            "source": request.source,
            "fetched-at": fetched_at.isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Archiver service
# ---------------------------------------------------------------------------

class Archiver:
    """
    Runs one archive request against a ServiceContext.

    Stateless beyond its context, so a new instance per request is fine.
    """

    def __init__(self, context: ServiceContext) -> None:
        self._context = context

    async def archive(self, request: ArchiveRequest) -> ArchiveResult:
        """
        Fetch `request.source` and stream it into the bucket under
        `request.suffix`.

        Raises ArchiveError with the kind of the first stage that failed.
        """
        context = self._context

        try:
            async with context.fetcher.fetch(request.source) as content:
                command = build_put_command(context.bucket_name, request, content)
                await self._upload(command)
        except FetchError as e:
            logger.warning(
                "Content fetch failed",
                extra={"source": request.source, "error": str(e)}
            )
            raise ArchiveError(ArchiveErrorKind.CONTENT_FETCH_FAILED) from e
        except StorageError as e:
            logger.warning(
                "Content upload failed",
                extra={
                    "source": request.source,
                    "key": request.suffix,
                    "error": str(e),
                }
            )
            raise ArchiveError(ArchiveErrorKind.CONTENT_UPLOAD_FAILED) from e

        try:
            location = resolve_location(
                context.public_url, context.bucket_name, request.suffix
            )
        except LocationError as e:
            logger.error(
                "Cannot compose public location",
                extra={"public_url": context.public_url, "error": str(e)}
            )
            raise ArchiveError(ArchiveErrorKind.INVALID_CONFIGURATION) from e

        logger.info(
            "Archived content",
            extra={
                "source": request.source,
                "key": request.suffix,
                "size_bytes": command.body.bytes_relayed,
                "location": location,
            }
        )

        return ArchiveResult(location=location)

    async def _upload(self, command: PutObjectCommand) -> None:
        try:
            await self._context.store.put_object(command)
        except asyncio.CancelledError:
            # The store may still be draining the body in a worker thread.
            # Failing its next read makes it abandon the PUT.
            command.body.abort()
            logger.warning(
                "Archive cancelled during upload",
                extra={"key": command.key, "bytes_relayed": command.body.bytes_relayed}
            )
            raise
