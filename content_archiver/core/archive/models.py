"""
Domain models for content archiving.

These models have no dependencies on FastAPI, httpx or boto3. The API
layer converts its pydantic request bodies into these before calling
the pipeline.
"""

from dataclasses import dataclass, field
from typing import Optional

from .relay import RelayStream


PUBLIC_READ_ACL = "public-read"
ARCHIVE_CACHE_CONTROL = "private, max-age=604800"  # one week


@dataclass(frozen=True)
class ArchiveRequest:
    """
    One archive call: fetch `source`, store it under `suffix`.

    `public` is accepted from callers but does not change the stored ACL.
    Every archived object is public-read.
    """
    source: str
    suffix: str
    public: bool


@dataclass(frozen=True)
class ArchiveResult:
    """Where the archived object can be read from."""
    location: str


@dataclass
class FetchedContent:
    """A validated fetch response whose body has not been read yet."""
    stream: RelayStream
    content_length: Optional[int] = None
    content_type: Optional[str] = None


@dataclass
class PutObjectCommand:
    """
    Everything an object store needs for one streamed PUT.

    Built by the pipeline, executed by an ObjectStore. The store does not
    decide any of these values.
    """
    bucket: str
    key: str
    body: RelayStream
    acl: str = PUBLIC_READ_ACL
    cache_control: str = ARCHIVE_CACHE_CONTROL
    content_length: Optional[int] = None
    content_type: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)
