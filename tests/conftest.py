"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

import asyncio
import contextlib
import threading
from collections.abc import AsyncGenerator, AsyncIterator

import numpy as np
import pytest

from podscribe.l1_entities.config import AppConfig
from podscribe.l1_entities.errors import InvalidResponseError, InvalidURLError
from podscribe.l1_entities.transcript import TranscriptSegment
from podscribe.l2_use_cases.ports.transcriber import DecodeOptions
from podscribe.l4_frameworks_and_drivers.config import build_app_config

# --- Synthetic MPEG data ---

# MPEG 1 (version bits 3), layer III (layer bits 1), bitrate index 9 → 128 kbps
MPEG1_128K_HEADER = bytes([0xFF, 0xFB, 0x90, 0x64])


def synchsafe(size: int) -> bytes:
    return bytes([(size >> 21) & 0x7F, (size >> 14) & 0x7F, (size >> 7) & 0x7F, size & 0x7F])


def id3_header(size: int) -> bytes:
    return b'ID3' + bytes([4, 0, 0]) + synchsafe(size)


# --- Protocol-conforming Fakes ---


class FakeTranscriber:
    """Fake transcriber. Returns queued results in call order, then the default."""

    def __init__(self, segments: list[TranscriptSegment] | None = None):
        self._segments = segments or []
        self._queue: list[list[TranscriptSegment]] = []
        self._error: Exception | None = None
        self.gate: threading.Event | None = None
        self.entered = threading.Event()
        self.load_model_calls: list[str] = []
        self.transcribe_calls: list[tuple[np.ndarray, DecodeOptions]] = []
        self.closed = False
        self.active = 0
        self.max_active = 0
        self._active_lock = threading.Lock()

    def load_model(self, model_path: str) -> None:
        self.load_model_calls.append(model_path)

    def transcribe(self, audio: np.ndarray, options: DecodeOptions) -> list[TranscriptSegment]:
        with self._active_lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            self.transcribe_calls.append((audio, options))
            self.entered.set()
            if self.gate is not None:
                self.gate.wait(timeout=5)
            if self._error is not None:
                raise self._error
            if self._queue:
                return self._queue.pop(0)
            return list(self._segments)
        finally:
            with self._active_lock:
                self.active -= 1

    def close(self) -> None:
        self.closed = True

    def set_segments(self, segments: list[TranscriptSegment]) -> None:
        self._segments = segments

    def queue_results(self, *results: list[TranscriptSegment]) -> None:
        self._queue.extend(results)

    def fail_with(self, error: Exception) -> None:
        self._error = error


class FakeAudioDecoder:
    """Fake decoder: emits ``samples_per_byte`` zero samples per input byte."""

    def __init__(self, samples_per_byte: float = 1.0):
        self._ratio = samples_per_byte
        self._error: Exception | None = None
        self.decode_calls: list[bytes] = []

    def decode(self, data: bytes) -> np.ndarray:
        self.decode_calls.append(data)
        if self._error is not None:
            raise self._error
        return np.zeros(int(len(data) * self._ratio), dtype=np.float32)

    def fail_with(self, error: Exception) -> None:
        self._error = error


class FakeByteStream:
    """Fake ByteStream over a list of blocks; may stall forever after N blocks."""

    def __init__(
        self,
        blocks: list[bytes],
        status_code: int = 206,
        expected_length: int | None = None,
        stall_after: int | None = None,
        start_byte: int = 0,
    ):
        self._blocks = blocks
        self.status_code = status_code
        self.expected_length = expected_length
        self.start_byte = start_byte
        self._stall_after = stall_after
        self.stalled = asyncio.Event()
        self.closed = False

    async def iter_bytes(self) -> AsyncGenerator[bytes, None]:
        try:
            for i, block in enumerate(self._blocks):
                if self._stall_after is not None and i >= self._stall_after:
                    self.stalled.set()
                    await asyncio.Event().wait()
                await asyncio.sleep(0)
                yield block
        finally:
            self.closed = True


class FakeRangeFetcher:
    """Fake RangeFetcher serving *body* in fixed-size blocks."""

    def __init__(
        self,
        body: bytes = b'',
        block_size: int = 1024,
        status_code: int = 206,
        report_length: bool = True,
        stall_after: int | None = None,
        probe_data: bytes | None = None,
    ):
        self.body = body
        self.block_size = block_size
        self.status_code = status_code
        self.report_length = report_length
        self.stall_after = stall_after
        self.probe_data = body if probe_data is None else probe_data
        self.open_calls: list[tuple[str, int]] = []
        self.fetch_range_calls: list[tuple[str, int, int]] = []
        self.streams: list[FakeByteStream] = []
        self.closed = False

    def check_url(self, url: str) -> None:
        if not url.startswith(('http://', 'https://')):
            raise InvalidURLError(f'Invalid audio URL: {url!r}')

    async def fetch_range(self, url: str, start: int, length: int) -> bytes:
        self.fetch_range_calls.append((url, start, length))
        return self.probe_data[start : start + length]

    @contextlib.asynccontextmanager
    async def open(self, url: str, start_byte: int) -> AsyncIterator[FakeByteStream]:
        self.open_calls.append((url, start_byte))
        if self.status_code not in (200, 206):
            raise InvalidResponseError(self.status_code)
        # A 200 means the server ignored the range and sends the whole body.
        served_from = start_byte if self.status_code == 206 else 0
        data = self.body[served_from:]
        blocks = [data[i : i + self.block_size] for i in range(0, len(data), self.block_size)]
        stream = FakeByteStream(
            blocks,
            status_code=self.status_code,
            expected_length=len(data) if self.report_length else None,
            stall_after=self.stall_after,
            start_byte=served_from,
        )
        self.streams.append(stream)
        yield stream

    async def aclose(self) -> None:
        self.closed = True


# --- Standard Fixtures ---


@pytest.fixture
def default_config() -> AppConfig:
    return build_app_config({})


@pytest.fixture
def small_chunk_config() -> AppConfig:
    return build_app_config({'stream': {'chunk_size': 1000}})


@pytest.fixture
def fake_transcriber():
    fake = FakeTranscriber()
    yield fake
    if fake.gate is not None:
        fake.gate.set()  # release any worker thread still parked in transcribe()


@pytest.fixture
def fake_decoder() -> FakeAudioDecoder:
    return FakeAudioDecoder()
