"""
Object storage client for archived content.

Targets any S3-compatible store (AWS S3, Ceph RGW, MinIO, R2) through
boto3, with an in-memory mock for local development and tests.

Uploads are a single streamed PUT. boto3 is synchronous, so the call runs
in a worker thread while the body is pulled chunk by chunk from the
event loop.
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Optional

import boto3
from anyio import to_thread
from botocore.config import Config

from ...core.archive.errors import StorageError
from ...core.archive.models import PutObjectCommand
from ...core.archive.pipeline import ObjectStore
from .streaming import BlockingStreamReader

logger = logging.getLogger(__name__)


@dataclass
class StorageConfig:
    """
    Configuration for an S3-compatible store.

    Credentials are optional; when omitted boto3 falls back to its default
    credential chain (environment, shared config, instance role).
    """
    bucket_name: str
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: str = "us-east-1"

    def __post_init__(self) -> None:
        if not self.bucket_name:
            raise ValueError("bucket_name is required")


class S3ObjectStore(ObjectStore):
    """
    ObjectStore backed by boto3.

    One boto3 client is shared by all requests; boto3 clients are safe to
    use from multiple threads.
    """

    def __init__(self, config: StorageConfig, s3_client: Any = None) -> None:
        self._config = config

        if s3_client is None:
            boto_config = Config(
                signature_version="s3v4",
                s3={
                    "addressing_style": "path",
                    # Streamed bodies cannot be hashed up front
                    "payload_signing_enabled": False,
                },
                request_checksum_calculation="when_required",
                retries={"total_max_attempts": 1},
            )

            s3_client = boto3.client(
                "s3",
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region,
                config=boto_config,
            )

        self._s3_client = s3_client

        logger.info(
            "Initialized S3 object store",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
            }
        )

    async def put_object(self, command: PutObjectCommand) -> None:
        """
        Stream the command body into the bucket with a single PUT.

        ContentLength and ContentType are only sent when known. Any failure,
        including a read error on the relayed body, raises StorageError.
        """
        params: dict[str, Any] = {
            "Bucket": command.bucket,
            "Key": command.key,
            "Body": BlockingStreamReader(command.body),
            "ACL": command.acl,
            "CacheControl": command.cache_control,
            "Metadata": dict(command.metadata),
        }
        if command.content_length is not None:
            params["ContentLength"] = command.content_length
        if command.content_type is not None:
            params["ContentType"] = command.content_type

        try:
            await to_thread.run_sync(
                partial(self._s3_client.put_object, **params),
                abandon_on_cancel=True,
            )
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={
                    "bucket": command.bucket,
                    "key": command.key,
                    "bytes_relayed": command.body.bytes_relayed,
                    "error": str(e),
                }
            )
            raise StorageError(f"Upload failed: {e}") from e

        logger.debug(
            "Uploaded object",
            extra={
                "bucket": command.bucket,
                "key": command.key,
                "size_bytes": command.body.bytes_relayed,
            }
        )


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class StoredObject:
    """An object as the mock store recorded it."""
    bucket: str
    key: str
    body: bytes
    acl: str
    cache_control: str
    content_length: Optional[int] = None
    content_type: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)


class MockObjectStore(ObjectStore):
    """
    In-memory object store.

    Enables running the full API without provisioning a bucket. Objects
    are kept in a dictionary keyed by (bucket, key). Setting
    `fail_uploads` makes every write fail, which is how tests simulate a
    store outage.

    Not suitable for production: every archived body is held in memory.
    """

    def __init__(self, fail_uploads: bool = False) -> None:
        self._objects: dict[tuple[str, str], StoredObject] = {}
        self.fail_uploads = fail_uploads
        logger.info("Initialized mock object store (in-memory)")

    async def put_object(self, command: PutObjectCommand) -> None:
        if self.fail_uploads:
            raise StorageError("Mock store rejected the upload")

        chunks: list[bytes] = []
        try:
            async for chunk in command.body:
                chunks.append(chunk)
        except OSError as e:
            raise StorageError(f"Upload failed: {e}") from e

        body = b"".join(chunks)
        if command.content_length is not None and len(body) != command.content_length:
            raise StorageError(
                f"Body was {len(body)} bytes, expected {command.content_length}"
            )

        self._objects[(command.bucket, command.key)] = StoredObject(
            bucket=command.bucket,
            key=command.key,
            body=body,
            acl=command.acl,
            cache_control=command.cache_control,
            content_length=command.content_length,
            content_type=command.content_type,
            metadata=dict(command.metadata),
        )

        logger.debug(
            "Stored object in mock storage",
            extra={"bucket": command.bucket, "key": command.key, "size_bytes": len(body)}
        )

    def get_object(self, bucket: str, key: str) -> StoredObject:
        """Return a stored object. Raises StorageError if absent."""
        try:
            return self._objects[(bucket, key)]
        except KeyError:
            raise StorageError(f"Object not found: {bucket}/{key}")

    def __len__(self) -> int:
        return len(self._objects)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_object_store(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> ObjectStore:
    """
    Create the object store for the configured mode.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return the in-memory store

    Returns:
        ObjectStore implementation (S3 or Mock)
    """
    if mock_mode:
        return MockObjectStore()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3ObjectStore(config)
