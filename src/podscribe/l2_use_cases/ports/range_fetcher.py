"""Port: resumable byte-range HTTP downloads."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import AbstractAsyncContextManager
from typing import Protocol


class ByteStream(Protocol):
    """An accepted (200/206) response body delivered incrementally."""

    status_code: int
    expected_length: int | None  # Content-Length of this response, when known
    start_byte: int  # absolute offset of the first body byte; 0 if the range was ignored

    def iter_bytes(self) -> AsyncGenerator[bytes, None]:
        """Yield the body block by block as it arrives."""
        ...


class RangeFetcher(Protocol):
    """Abstract byte-range transport."""

    def check_url(self, url: str) -> None:
        """Raise InvalidURLError if *url* cannot be fetched. Performs no I/O."""
        ...

    async def fetch_range(self, url: str, start: int, length: int) -> bytes:
        """Return at most *length* bytes starting at *start*."""
        ...

    def open(self, url: str, start_byte: int) -> AbstractAsyncContextManager[ByteStream]:
        """Open ``Range: bytes=start_byte-``. Raises InvalidResponseError unless 200/206."""
        ...
