"""Gateway: httpx byte-range fetcher — implements RangeFetcher port."""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import AsyncGenerator, AsyncIterator

import httpx

from podscribe.l1_entities.errors import InvalidResponseError, InvalidURLError, StreamFetchError

log = logging.getLogger('podscribe.fetch')

ACCEPTED_STATUS = (200, 206)


def check_url(url: str) -> httpx.URL:
    """Parse *url*, rejecting anything that is not an absolute http(s) URL."""
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise InvalidURLError(f'Invalid audio URL: {url!r}') from exc
    if parsed.scheme not in ('http', 'https') or not parsed.host:
        raise InvalidURLError(f'Invalid audio URL: {url!r}')
    return parsed


class HttpxByteStream:
    """Streamed response body. Enforces the whole-transfer deadline between reads."""

    def __init__(self, response: httpx.Response, start_byte: int = 0, deadline: float | None = None) -> None:
        self._response = response
        self._deadline = deadline
        self.status_code = response.status_code
        self.start_byte = start_byte if response.status_code == 206 else 0
        length = response.headers.get('Content-Length', '')
        self.expected_length: int | None = int(length) if length.isdigit() else None
        self.bytes_received = 0

    async def iter_bytes(self) -> AsyncGenerator[bytes, None]:
        try:
            async for block in self._response.aiter_bytes():
                if self._deadline is not None and time.monotonic() > self._deadline:
                    raise StreamFetchError('Resource timeout expired while streaming audio')
                self.bytes_received += len(block)
                yield block
        except httpx.HTTPError as exc:
            raise StreamFetchError(f'Audio stream interrupted: {exc}') from exc


class HttpxRangeFetcher:
    """Issues ``Range`` GETs over a shared AsyncClient.

    Per-read timeouts are minutes long and connection attempts are retried,
    because a single transfer lives as long as the transcription of the whole
    episode.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        request_timeout: float = 600.0,
        resource_timeout: float | None = 30000.0,
        connect_retries: int = 3,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(request_timeout),
            follow_redirects=True,
            transport=httpx.AsyncHTTPTransport(retries=connect_retries),
        )
        self._resource_timeout = resource_timeout

    def check_url(self, url: str) -> None:
        check_url(url)

    @contextlib.asynccontextmanager
    async def _send(self, url: str, range_header: str) -> AsyncIterator[httpx.Response]:
        # Offsets count file bytes, so transfer compression stays off.
        headers = {'Range': range_header, 'Accept-Encoding': 'identity'}
        request = self._client.build_request('GET', check_url(url), headers=headers)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise StreamFetchError(f'Range request failed: {exc}') from exc
        try:
            if response.status_code not in ACCEPTED_STATUS:
                raise InvalidResponseError(response.status_code)
            yield response
        finally:
            await response.aclose()

    async def fetch_range(self, url: str, start: int, length: int) -> bytes:
        buf = bytearray()
        async with self._send(url, f'bytes={start}-{start + length - 1}') as response:
            try:
                async for block in response.aiter_bytes():
                    buf.extend(block)
                    if len(buf) >= length:
                        break  # server ignored the range and sent the whole body
            except httpx.HTTPError as exc:
                raise StreamFetchError(f'Range read failed: {exc}') from exc
        return bytes(buf[:length])

    @contextlib.asynccontextmanager
    async def open(self, url: str, start_byte: int) -> AsyncIterator[HttpxByteStream]:
        deadline = time.monotonic() + self._resource_timeout if self._resource_timeout else None
        async with self._send(url, f'bytes={start_byte}-') as response:
            if response.status_code == 200 and start_byte > 0:
                log.warning('Server ignored Range header; streaming from byte 0 instead of %d', start_byte)
            stream = HttpxByteStream(response, start_byte, deadline)
            log.info(
                'Streaming %s from byte %d (status %d, length %s)',
                url,
                stream.start_byte,
                stream.status_code,
                stream.expected_length,
            )
            yield stream

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
