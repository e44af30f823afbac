"""Pytest configuration and fixtures."""

from typing import AsyncIterator, Callable, Optional

import httpx
import pytest

from content_archiver.config.settings import Settings
from content_archiver.core.archive.pipeline import ServiceContext
from content_archiver.infrastructure.http.fetcher import HttpContentFetcher
from content_archiver.infrastructure.storage.client import MockObjectStore

BUCKET = "archive"
TOKEN = "s3cret-token"
PUBLIC_URL = "https://objects.example.com"


class FakeSource:
    """
    Stand-in for the remote sources archived in tests.

    Routes map a URL path to a handler. Every request that reaches the
    transport is recorded, so tests can assert that no egress happened.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def serve(
        self,
        path: str,
        body: bytes = b"",
        status_code: int = 200,
        headers: Optional[dict[str, str]] = None,
    ) -> str:
        """Serve a fixed response at `path` and return its URL."""
        response_headers = {"Content-Length": str(len(body)), **(headers or {})}

        # stream= keeps the body unread, like a real network response
        self.routes[path] = lambda request: httpx.Response(
            status_code, stream=httpx.ByteStream(body), headers=response_headers
        )
        return f"https://source.example.com{path}"

    def refuse(self, path: str) -> str:
        """Fail connections to `path` as if the port were closed."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        self.routes[path] = handler
        return f"https://source.example.com{path}"

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404)
        return handler(request)

    def fetcher(self) -> HttpContentFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handle))
        return HttpContentFetcher(client)


async def chunked(data: bytes, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield `data` in chunks of `chunk_size`."""
    for start in range(0, len(data), chunk_size):
        yield data[start:start + chunk_size]


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def store() -> MockObjectStore:
    return MockObjectStore()


@pytest.fixture
def settings() -> Settings:
    """Settings for an app that never reads the environment."""
    return Settings(
        _env_file=None,
        bucket_name=BUCKET,
        bearer_token=TOKEN,
        public_url=PUBLIC_URL,
        store_mock_mode=True,
    )


@pytest.fixture
def context(source: FakeSource, store: MockObjectStore) -> ServiceContext:
    return ServiceContext(
        fetcher=source.fetcher(),
        store=store,
        bucket_name=BUCKET,
        bearer_token=TOKEN,
        public_url=PUBLIC_URL,
    )
