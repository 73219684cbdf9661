"""Use case: drive a byte stream through chunking, decoding and recognition."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

import numpy as np

from podscribe.l1_entities.audio_constants import SAMPLE_RATE
from podscribe.l1_entities.chunk import DEFAULT_CHUNK_SIZE, AudioChunk
from podscribe.l1_entities.errors import AudioProcessingError, TranscriptionError, TranscriptionFailedError
from podscribe.l1_entities.session import Session
from podscribe.l1_entities.transcript import TranscriptSegment
from podscribe.l2_use_cases.chunk_assembler import ChunkAssembler
from podscribe.l2_use_cases.merge_segments_use_case import clean_transcript_text
from podscribe.l2_use_cases.ports.audio_decoder import AudioDecoder
from podscribe.l2_use_cases.ports.range_fetcher import ByteStream
from podscribe.l2_use_cases.ports.transcriber import DecodeOptions, Transcriber
from podscribe.l2_use_cases.utils.cancellation import CancellationToken

log = logging.getLogger('podscribe.stream')

ChunkCallback = Callable[[list[TranscriptSegment]], None]


class TranscribeStreamUseCase:
    """Turns an HTTP byte stream into timestamped segments, one chunk at a time.

    Chunks are processed strictly in order. A decode or recognition failure
    aborts the stream: skipping a chunk would leave a hole in the timeline
    that nothing downstream can account for.

    The only clock is the stream itself: each chunk starts where the samples
    of all previous chunks ended, offset by the session start time.
    """

    def __init__(
        self,
        decoder: AudioDecoder,
        transcriber: Transcriber,
        options: DecodeOptions | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        sample_rate: int = SAMPLE_RATE,
    ) -> None:
        self._decoder = decoder
        self._transcriber = transcriber
        self._options = options or DecodeOptions()
        self._chunk_size = chunk_size
        self._sample_rate = sample_rate
        self._in_flight: asyncio.Future | None = None

    async def run(
        self,
        session: Session,
        stream: ByteStream,
        token: CancellationToken,
        on_chunk: ChunkCallback,
    ) -> None:
        """Consume *stream* to exhaustion, calling *on_chunk* after every processed chunk."""
        assembler = ChunkAssembler(self._chunk_size)
        expected_total = stream.expected_length
        if not expected_total:
            session.progress = None

        async with contextlib.aclosing(stream.iter_bytes()) as blocks:
            async for block in blocks:
                token.raise_if_cancelled()
                session.byte_offset += len(block)
                for chunk in assembler.feed(block):
                    await self.process_chunk(session, chunk, token, expected_total, on_chunk)

        token.raise_if_cancelled()
        tail = assembler.flush()
        if tail is not None:
            await self.process_chunk(session, tail, token, expected_total, on_chunk)

    async def process_chunk(
        self,
        session: Session,
        chunk: AudioChunk,
        token: CancellationToken,
        expected_total: int | None,
        on_chunk: ChunkCallback,
    ) -> list[TranscriptSegment]:
        token.raise_if_cancelled()
        samples = await self._decode(chunk.data)
        token.raise_if_cancelled()

        chunk_start = session.start_time + session.sample_cursor / self._sample_rate
        segments: list[TranscriptSegment] = []
        if len(samples) > 0:
            raw = await self._recognize(samples)
            # Cancelled mid-inference: drop this chunk's output entirely.
            token.raise_if_cancelled()
            segments = [seg.shifted(chunk_start) for seg in raw if clean_transcript_text(seg.text)]

        session.sample_cursor += len(samples)
        session.processed_offset = session.start_byte + chunk.watermark
        if expected_total:
            session.progress = min(max(chunk.watermark / expected_total, 0.0), 1.0)

        log.debug(
            'Chunk %d bytes at %.2fs → %d samples, %d segments',
            len(chunk),
            chunk_start,
            len(samples),
            len(segments),
        )
        on_chunk(segments)
        return segments

    async def _decode(self, data: bytes) -> np.ndarray:
        try:
            return await self._offload(self._decoder.decode, data)
        except TranscriptionError:
            raise
        except Exception as exc:
            raise AudioProcessingError(f'Failed to decode audio chunk: {exc}') from exc

    async def _recognize(self, samples: np.ndarray) -> list[TranscriptSegment]:
        try:
            return await self._offload(self._transcriber.transcribe, samples, self._options)
        except Exception as exc:
            raise TranscriptionFailedError(f'Recognition failed: {exc}') from exc

    async def drain(self) -> None:
        """Wait for a blocking call abandoned by cancellation to return.

        The worker thread cannot be interrupted; until it returns, the
        decoder or engine is still in use and must not be handed to the next
        session.
        """
        future = self._in_flight
        if future is not None and not future.done():
            log.debug('Waiting for abandoned engine call to return')
            await asyncio.wait([future])
        self._in_flight = None

    async def _offload(self, fn: Callable, *args):
        future = asyncio.ensure_future(asyncio.to_thread(fn, *args))
        future.add_done_callback(_retrieve_result)
        self._in_flight = future
        # Shielded so a cancelled session leaves the future in _in_flight for drain().
        result = await asyncio.shield(future)
        self._in_flight = None
        return result


def _retrieve_result(future: asyncio.Future) -> None:
    # An abandoned call may fail after nobody awaits it; mark the error as seen.
    if not future.cancelled():
        future.exception()
