"""
File-like adapter from a RelayStream to synchronous SDKs.

boto3 reads request bodies with blocking `read()` calls from a worker
thread. This adapter serves those calls by pulling one chunk at a time
from the event loop, so the body is never materialized.
"""

from typing import Optional

from anyio import from_thread

from ...core.archive.relay import RelayStream


class BlockingStreamReader:
    """
    Read-only, non-seekable file object over a RelayStream.

    Must be read from a worker thread started by anyio (for example via
    `anyio.to_thread.run_sync`). At most one upstream chunk is held
    between reads.
    """

    def __init__(self, stream: RelayStream) -> None:
        self._stream = stream
        self._chunk = b""
        self._offset = 0
        self._eof = False

    def readable(self) -> bool:
        return True

    def read(self, size: Optional[int] = -1) -> bytes:
        """
        Return up to `size` bytes, or b"" at end of stream.

        A negative or missing size returns the rest of the current chunk,
        never the rest of the stream.
        """
        if self._offset >= len(self._chunk):
            if self._eof:
                return b""
            self._chunk = from_thread.run(self._stream.read_chunk)
            self._offset = 0
            if not self._chunk:
                self._eof = True
                return b""

        start = self._offset
        if size is None or size < 0:
            end = len(self._chunk)
        else:
            end = min(start + size, len(self._chunk))

        self._offset = end
        if start == 0 and end == len(self._chunk):
            return self._chunk
        return self._chunk[start:end]

    def close(self) -> None:
        self._chunk = b""
        self._offset = 0
