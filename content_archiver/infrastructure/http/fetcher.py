"""
Content fetcher backed by httpx.

The fetcher opens the source in streaming mode and hands the unread body
to the pipeline. It never reads the body itself, so archiving a large
file costs no more memory than archiving a small one.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from ...core.archive.errors import FetchError
from ...core.archive.models import FetchedContent
from ...core.archive.pipeline import ContentFetcher
from ...core.archive.relay import RelayStream

logger = logging.getLogger(__name__)


@dataclass
class FetcherConfig:
    """Configuration for the outbound HTTP client."""
    timeout_seconds: float = 30.0
    follow_redirects: bool = True

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


class HttpContentFetcher(ContentFetcher):
    """
    ContentFetcher that issues a plain GET through a shared AsyncClient.

    Only a 200 counts as success. Every other status and every transport
    failure (DNS, connect, TLS, timeout, bad URL) becomes FetchError.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @asynccontextmanager
    async def fetch(self, source: str) -> AsyncIterator[FetchedContent]:
        try:
            request = self._client.build_request("GET", source)
            response = await self._client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeError) as e:
            raise FetchError(f"Request to source failed: {e}") from e

        try:
            if response.status_code != httpx.codes.OK:
                raise FetchError(f"Source answered HTTP {response.status_code}")

            content = FetchedContent(
                stream=RelayStream(response.aiter_raw()),
                content_length=_parse_content_length(response.headers.get("content-length")),
                content_type=_ascii_or_none(response.headers.get("content-type")),
            )

            logger.debug(
                "Fetched source",
                extra={
                    "source": source,
                    "content_length": content.content_length,
                    "content_type": content.content_type,
                }
            )

            yield content
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()


def _parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length >= 0 else None


def _ascii_or_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.isascii():
        return None
    return value


def create_content_fetcher(
    config: Optional[FetcherConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> HttpContentFetcher:
    """
    Create the fetcher and its connection pool.

    `identity` encoding keeps the relayed bytes identical to what the
    origin serves, so its content-length stays accurate.
    """
    config = config or FetcherConfig()

    client = httpx.AsyncClient(
        timeout=config.timeout_seconds,
        follow_redirects=config.follow_redirects,
        headers={"Accept-Encoding": "identity"},
        transport=transport,
    )

    logger.info(
        "Initialized content fetcher",
        extra={"timeout_seconds": config.timeout_seconds}
    )

    return HttpContentFetcher(client)
