"""
Unit tests for the object store adapters.

S3ObjectStore is driven with a fake boto3 client that reads the request
body the way botocore does: blocking read() calls from a worker thread.
That exercises the thread bridge for real, including the property that
matters most here: memory stays flat no matter how large the body is.
"""

import asyncio
import threading
import tracemalloc
from typing import AsyncIterator, Optional

from anyio import to_thread
import pytest
from botocore.exceptions import ClientError

from content_archiver.core.archive.errors import StorageError, StreamReadError
from content_archiver.core.archive.models import ArchiveRequest, PutObjectCommand
from content_archiver.core.archive.pipeline import Archiver, ServiceContext
from content_archiver.core.archive.relay import RelayStream
from content_archiver.infrastructure.storage.client import (
    MockObjectStore,
    S3ObjectStore,
    StorageConfig,
    create_object_store,
)
from content_archiver.infrastructure.storage.streaming import BlockingStreamReader

from conftest import BUCKET, PUBLIC_URL, TOKEN, FakeSource, chunked


class FakeS3Client:
    """
    Records put_object calls and drains the body like an HTTP sender.

    Bodies are only kept when `keep_body` is set, so very large uploads
    can be simulated without holding them.
    """

    def __init__(
        self,
        read_size: int = 8192,
        keep_body: bool = True,
        error: Optional[Exception] = None,
    ) -> None:
        self.read_size = read_size
        self.keep_body = keep_body
        self.error = error
        self.calls: list[dict] = []
        self.body = bytearray()
        self.bytes_read = 0
        self.largest_read = 0

    def put_object(self, **params) -> dict:
        self.calls.append({k: v for k, v in params.items() if k != "Body"})
        if self.error is not None:
            raise self.error

        body = params["Body"]
        while True:
            data = body.read(self.read_size)
            if not data:
                break
            self.bytes_read += len(data)
            self.largest_read = max(self.largest_read, len(data))
            if self.keep_body:
                self.body.extend(data)

        return {"ETag": '"fake"'}


class StallingS3Client:
    """
    Reads one block of the body, then waits to be released before draining
    the rest. Whatever the later reads raise is kept in `error`.
    """

    def __init__(self, read_size: int = 8192) -> None:
        self.read_size = read_size
        self.first_read = threading.Event()
        self.release = threading.Event()
        self.finished = threading.Event()
        self.error: Optional[BaseException] = None

    def put_object(self, **params) -> dict:
        body = params["Body"]
        try:
            body.read(self.read_size)
            self.first_read.set()
            self.release.wait(timeout=5)
            while body.read(self.read_size):
                pass
        except Exception as e:
            self.error = e
            raise
        finally:
            self.finished.set()

        return {"ETag": '"fake"'}


def make_command(
    source: AsyncIterator[bytes],
    content_length: Optional[int] = None,
    content_type: Optional[str] = None,
) -> PutObjectCommand:
    return PutObjectCommand(
        bucket="archive",
        key="images/a.png",
        body=RelayStream(source),
        content_length=content_length,
        content_type=content_type,
        metadata={"source": "https://a.example.com/a.png", "fetched-at": "2024-05-01T00:00:00+00:00"},
    )


def make_store(client: FakeS3Client) -> S3ObjectStore:
    return S3ObjectStore(StorageConfig(bucket_name="archive"), s3_client=client)


# ---------------------------------------------------------------------------
# S3ObjectStore Tests
# ---------------------------------------------------------------------------

class TestS3ObjectStore:
    """Tests for the boto3-backed store."""

    @pytest.mark.asyncio
    async def test_put_object_parameters(self):
        """Every command field maps onto the matching PutObject parameter."""
        client = FakeS3Client()
        store = make_store(client)
        data = b"\x89PNG" + b"\x01" * 1020

        await store.put_object(make_command(chunked(data, 100), len(data), "image/png"))

        (call,) = client.calls
        assert call == {
            "Bucket": "archive",
            "Key": "images/a.png",
            "ACL": "public-read",
            "CacheControl": "private, max-age=604800",
            "Metadata": {
                "source": "https://a.example.com/a.png",
                "fetched-at": "2024-05-01T00:00:00+00:00",
            },
            "ContentLength": 1024,
            "ContentType": "image/png",
        }
        assert bytes(client.body) == data

    @pytest.mark.asyncio
    async def test_unknown_length_and_type_are_omitted(self):
        client = FakeS3Client()

        await make_store(client).put_object(make_command(chunked(b"abc", 1)))

        (call,) = client.calls
        assert "ContentLength" not in call
        assert "ContentType" not in call
        assert bytes(client.body) == b"abc"

    @pytest.mark.asyncio
    async def test_client_error_becomes_storage_error(self):
        error = ClientError(
            {"Error": {"Code": "InternalError", "Message": "We encountered an internal error"}},
            "PutObject",
        )
        store = make_store(FakeS3Client(error=error))

        with pytest.raises(StorageError, match="InternalError"):
            await store.put_object(make_command(chunked(b"abc", 1)))

    @pytest.mark.asyncio
    async def test_source_read_error_becomes_storage_error(self):
        """A body that breaks mid-read aborts the upload."""
        async def source() -> AsyncIterator[bytes]:
            yield b"partial"
            raise ConnectionResetError("reset by peer")

        store = make_store(FakeS3Client())

        with pytest.raises(StorageError, match="reset by peer"):
            await store.put_object(make_command(source()))

    @pytest.mark.asyncio
    async def test_large_body_streams_in_bounded_memory(self):
        """
        512 MiB relayed through the thread bridge without buffering.

        The source reuses one 64 KiB chunk, so any growth in traced memory
        comes from the relay itself.
        """
        chunk = b"\x00" * 65536
        total = 512 * 1024 * 1024

        async def source() -> AsyncIterator[bytes]:
            for _ in range(total // len(chunk)):
                yield chunk

        client = FakeS3Client(read_size=8192, keep_body=False)
        store = make_store(client)

        tracemalloc.start()
        try:
            await store.put_object(make_command(source(), content_length=total))
            _, peak = tracemalloc.get_traced_memory()
        finally:
            tracemalloc.stop()

        assert client.bytes_read == total
        assert client.largest_read <= 8192
        assert peak < 16 * 1024 * 1024

    @pytest.mark.asyncio
    async def test_cancelled_archive_breaks_the_upload_body(self, source: FakeSource):
        """
        Cancelling an archive mid-upload makes the worker's next read fail.

        botocore abandons the PUT when reading the body raises, so no
        object is written.
        """
        client = StallingS3Client()
        context = ServiceContext(
            fetcher=source.fetcher(),
            store=make_store(client),
            bucket_name=BUCKET,
            bearer_token=TOKEN,
            public_url=PUBLIC_URL,
        )
        url = source.serve("/big.bin", body=b"\x01" * 65536)

        task = asyncio.create_task(
            Archiver(context).archive(ArchiveRequest(source=url, suffix="big.bin", public=True))
        )
        assert await to_thread.run_sync(client.first_read.wait, 5)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        client.release.set()
        assert await to_thread.run_sync(client.finished.wait, 5)
        assert isinstance(client.error, StreamReadError)
        assert "aborted" in str(client.error)


# ---------------------------------------------------------------------------
# BlockingStreamReader Tests
# ---------------------------------------------------------------------------

class TestBlockingStreamReader:
    """Tests for the file-like adapter used by boto3."""

    @pytest.mark.asyncio
    async def test_reads_respect_size(self):
        reader = BlockingStreamReader(RelayStream(chunked(b"abcdefgh", 5)))

        def read_all() -> list[bytes]:
            return [reader.read(3), reader.read(3), reader.read(3), reader.read(3), reader.read(3)]

        parts = await to_thread.run_sync(read_all)

        # Reads never span chunks: "abcde" then "fgh"
        assert parts == [b"abc", b"de", b"fgh", b"", b""]

    @pytest.mark.asyncio
    async def test_unsized_read_returns_one_chunk(self):
        """read() must not drain the whole stream into memory."""
        reader = BlockingStreamReader(RelayStream(chunked(b"abcdefgh", 4)))

        parts = await to_thread.run_sync(lambda: [reader.read(), reader.read(), reader.read()])

        assert parts == [b"abcd", b"efgh", b""]

    def test_is_readable_and_not_seekable(self):
        reader = BlockingStreamReader(RelayStream(chunked(b"", 1)))
        assert reader.readable()
        assert not hasattr(reader, "seek")


# ---------------------------------------------------------------------------
# MockObjectStore Tests
# ---------------------------------------------------------------------------

class TestMockObjectStore:
    """Tests for the in-memory store."""

    @pytest.mark.asyncio
    async def test_records_object(self):
        store = MockObjectStore()

        await store.put_object(make_command(chunked(b"abc", 2), 3, "text/plain"))

        stored = store.get_object("archive", "images/a.png")
        assert stored.body == b"abc"
        assert stored.acl == "public-read"
        assert stored.content_type == "text/plain"

    @pytest.mark.asyncio
    async def test_short_body_is_rejected(self):
        """A body shorter than the declared length is a failed write."""
        store = MockObjectStore()

        with pytest.raises(StorageError, match="expected 10"):
            await store.put_object(make_command(chunked(b"abc", 2), content_length=10))

        assert len(store) == 0

    def test_missing_object_raises(self):
        with pytest.raises(StorageError, match="not found"):
            MockObjectStore().get_object("archive", "nope")


class TestCreateObjectStore:
    """Tests for the store factory."""

    def test_mock_mode_returns_mock_store(self):
        assert isinstance(create_object_store(mock_mode=True), MockObjectStore)

    def test_real_mode_requires_config(self):
        with pytest.raises(ValueError, match="config is required"):
            create_object_store()

    def test_real_mode_builds_s3_store(self):
        config = StorageConfig(
            bucket_name="archive",
            endpoint_url="http://localhost:9000",
            access_key_id="test-access-key",
            secret_access_key="test-secret-key",
        )
        assert isinstance(create_object_store(config), S3ObjectStore)

    def test_storage_config_requires_bucket(self):
        with pytest.raises(ValueError, match="bucket_name"):
            StorageConfig(bucket_name="")
