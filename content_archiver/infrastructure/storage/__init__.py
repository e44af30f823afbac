"""
Object storage integration for archived content.

Supports any S3-compatible endpoint via boto3.
Includes mock mode for local development without credentials.
"""

from .client import (
    MockObjectStore,
    S3ObjectStore,
    StorageConfig,
    StoredObject,
    create_object_store,
)
from .streaming import BlockingStreamReader

__all__ = [
    "BlockingStreamReader",
    "MockObjectStore",
    "S3ObjectStore",
    "StorageConfig",
    "StoredObject",
    "create_object_store",
]
