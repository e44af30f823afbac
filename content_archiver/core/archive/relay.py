"""
Lazy byte relay between a fetch response and an upload body.

RelayStream is the one place where read errors from the source transport
are translated. It wraps any async iterator of byte chunks, so the fetch
client can change without touching the upload side, and vice versa.

Nothing here buffers: each chunk is handed on as soon as it arrives and
forgotten. Peak memory is bounded by the transport's chunk size, not by
the size of the content being archived.
"""

from typing import AsyncIterator

from .errors import StreamReadError


class RelayStream:
    """
    Single-pass async sequence of byte chunks.

    Iterating a second time raises StreamReadError instead of silently
    producing an empty body. Empty chunks from the source are skipped.
    """

    def __init__(self, source: AsyncIterator[bytes]) -> None:
        self._source = source
        self._started = False
        self._aborted = False
        self.bytes_relayed = 0

    def __aiter__(self) -> "RelayStream":
        self._claim()
        return self

    async def __anext__(self) -> bytes:
        while True:
            if self._aborted:
                raise StreamReadError("Relay stream was aborted")
            try:
                chunk = await self._source.__anext__()
            except StopAsyncIteration:
                raise
            except Exception as e:
                raise StreamReadError(f"Reading source failed: {e}") from e
            if chunk:
                self.bytes_relayed += len(chunk)
                return chunk

    async def read_chunk(self) -> bytes:
        """Return the next chunk, or b"" once the source is exhausted."""
        self._started = True
        try:
            return await self.__anext__()
        except StopAsyncIteration:
            return b""

    def abort(self) -> None:
        """Make every further read fail. Used when the request is cancelled."""
        self._aborted = True

    @property
    def aborted(self) -> bool:
        return self._aborted

    def _claim(self) -> None:
        if self._started:
            raise StreamReadError("Relay stream can only be consumed once")
        self._started = True
