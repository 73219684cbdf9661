"""SessionController — owns the live session, runs the pipeline, publishes snapshots."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from podscribe.l1_entities.config import AppConfig
from podscribe.l1_entities.errors import ModelNotLoadedError, TranscriptionCancelled, TranscriptionError
from podscribe.l1_entities.session import Session, SessionSnapshot, SessionState
from podscribe.l1_entities.transcript import TranscriptSegment, find_segment_index
from podscribe.l2_use_cases.merge_segments_use_case import merge_segments
from podscribe.l2_use_cases.ports.audio_decoder import AudioDecoder
from podscribe.l2_use_cases.ports.range_fetcher import RangeFetcher
from podscribe.l2_use_cases.ports.transcriber import DecodeOptions, Transcriber
from podscribe.l2_use_cases.probe_bitrate_use_case import ProbeBitrateUseCase
from podscribe.l2_use_cases.transcribe_stream_use_case import TranscribeStreamUseCase
from podscribe.l2_use_cases.utils.cancellation import CancellationToken

log = logging.getLogger('podscribe.controller')


class SessionController:
    """Central coordinator between the pipeline and its observers.

    At most one session is live. Every ``start()`` cancels the previous
    session, waits for it to unwind, and only then builds fresh state, so two
    sessions never write to the transcript at once. All mutation happens on
    the event loop that calls ``start()``; observers get frozen snapshots.
    """

    def __init__(
        self,
        config: AppConfig,
        fetcher: RangeFetcher,
        decoder: AudioDecoder,
        transcriber: Transcriber | None = None,
        on_update: Callable[[SessionSnapshot], None] | None = None,
    ) -> None:
        self._config = config
        self._fetcher = fetcher
        self._decoder = decoder
        self._transcriber = transcriber
        self._on_update = on_update
        self._probe = ProbeBitrateUseCase(
            fetcher,
            probe_bytes=config.stream.probe_bytes,
            default_bitrate=config.stream.default_bitrate,
        )

        initial = SessionState.NOT_STARTED if transcriber is not None else SessionState.NOT_INITIALIZED
        self._session = Session(state=initial)
        self._segments: list[TranscriptSegment] = []
        self._current_index = -1
        self._task: asyncio.Task | None = None
        self._token: CancellationToken | None = None
        self._driver: TranscribeStreamUseCase | None = None
        self._resume_point: tuple[str, int, int] | None = None  # (url, byte offset, bitrate)

    # --- read-only surface ---

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def progress(self) -> float | None:
        return self._session.progress

    @property
    def segments(self) -> tuple[TranscriptSegment, ...]:
        return tuple(self._segments)

    @property
    def current_segment_index(self) -> int:
        return self._current_index

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def snapshot(self) -> SessionSnapshot:
        s = self._session
        return SessionSnapshot(
            state=s.state,
            progress=s.progress,
            start_time=s.start_time,
            byte_offset=s.byte_offset,
            bitrate=s.bitrate,
            segments=tuple(self._segments),
            current_segment_index=self._current_index,
            error_code=s.error_code,
            error_message=s.error_message,
        )

    # --- commands ---

    def attach_transcriber(self, transcriber: Transcriber) -> None:
        """Supply a ready recognition engine; leaves NOT_INITIALIZED."""
        self._transcriber = transcriber
        if self._session.state == SessionState.NOT_INITIALIZED:
            self._session = Session(state=SessionState.NOT_STARTED)
            self._publish()

    async def start(self, url: str, start_time: float = 0.0) -> None:
        """Begin a brand-new session at *start_time* seconds, discarding the current one."""
        await self._begin(url, start_time=start_time, start_byte=None, bitrate=None)

    async def resume(self) -> bool:
        """Restart from the last fully processed byte of the previous session.

        Skips the bitrate probe. The transcript is still discarded.
        Returns False when no earlier session left a resume point.
        """
        if self._resume_point is None:
            return False
        url, start_byte, bitrate = self._resume_point
        await self._begin(url, start_time=start_byte / (bitrate / 8), start_byte=start_byte, bitrate=bitrate)
        return True

    def stop(self) -> None:
        """Request cancellation. State changes once the session task unwinds."""
        if self._token is not None:
            self._token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> SessionSnapshot:
        """Wait for the live session to finish; return the final snapshot."""
        if self._task is not None:
            await asyncio.wait([self._task])
            self._settle(self._session, self._task)
        return self.snapshot()

    async def shutdown(self) -> None:
        await self._cancel_live()

    def update_playback_time(self, time: float) -> int:
        """Track the segment under the playhead. Publishes only when it changes."""
        index = find_segment_index(self._segments, time, self._config.merge.lookup_tolerance)
        if index != self._current_index:
            self._current_index = index
            self._publish()
        return index

    # --- session lifecycle ---

    async def _begin(self, url: str, *, start_time: float, start_byte: int | None, bitrate: int | None) -> None:
        if self._transcriber is None:
            log.warning('Cannot start transcription: no recognition engine loaded')
            err = ModelNotLoadedError('Recognition model not loaded')
            self._session = Session(
                url=url,
                state=SessionState.NOT_INITIALIZED,
                start_time=start_time,
                error_code=err.code,
                error_message=str(err),
            )
            self._publish()
            return

        await self._cancel_live()

        self._segments = []
        self._current_index = -1
        session = Session(url=url, state=SessionState.TRANSCRIBING, start_time=start_time, bitrate=bitrate)
        token = CancellationToken()
        self._session = session
        self._token = token
        self._publish()

        driver = TranscribeStreamUseCase(
            decoder=self._decoder,
            transcriber=self._transcriber,
            options=DecodeOptions(
                language=self._config.transcription.language,
                word_timestamps=self._config.transcription.word_timestamps,
            ),
            chunk_size=self._config.stream.chunk_size,
        )
        self._driver = driver
        self._task = asyncio.create_task(self._run(session, token, driver, start_byte))
        self._task.add_done_callback(lambda task: self._settle(session, task))

    async def _cancel_live(self) -> None:
        task = self._task
        if task is None:
            return
        if not task.done():
            log.info('Cancelling live session for %s', self._session.url)
            self.stop()
            await asyncio.wait([task])
        self._settle(self._session, task)
        if self._driver is not None:
            # The engine is shared with the next session; no overlapping calls.
            await self._driver.drain()
        self._task = None
        self._token = None
        self._driver = None

    async def _run(
        self,
        session: Session,
        token: CancellationToken,
        driver: TranscribeStreamUseCase,
        start_byte: int | None,
    ) -> None:
        try:
            self._fetcher.check_url(session.url)
            token.raise_if_cancelled()
            if session.bitrate is None:
                session.bitrate = await self._probe.execute(session.url)
                token.raise_if_cancelled()
            if start_byte is None:
                start_byte = int(session.start_time * session.bitrate / 8)
            session.start_byte = session.byte_offset = session.processed_offset = start_byte

            log.info(
                'Session start: %s at %.2fs (byte %d, %d bps)',
                session.url,
                session.start_time,
                start_byte,
                session.bitrate,
            )
            async with self._fetcher.open(session.url, start_byte) as stream:
                if stream.start_byte != start_byte:
                    self._rebase(session, stream.start_byte)
                await driver.run(session, stream, token, self._on_chunk)
        except (TranscriptionCancelled, asyncio.CancelledError):
            self._finish_cancelled(session)
        except TranscriptionError as exc:
            log.error('Session failed [%s]: %s', exc.code, exc, exc_info=True)
            self._fail(session, exc.code, str(exc))
        except Exception as exc:
            log.error('Unexpected session failure: %s', exc, exc_info=True)
            self._fail(session, 'unexpected', str(exc))
        else:
            session.state = SessionState.COMPLETED
            if session.progress is not None:
                session.progress = 1.0
            log.info('Session completed: %d segments', len(self._segments))
            self._publish()
        finally:
            if session.bitrate:
                self._resume_point = (session.url, session.processed_offset, session.bitrate)

    def _rebase(self, session: Session, start_byte: int) -> None:
        log.warning(
            'Stream starts at byte %d instead of %d; timeline rebased to %.2fs',
            start_byte,
            session.start_byte,
            start_byte / session.bytes_per_second,
        )
        session.start_byte = session.byte_offset = session.processed_offset = start_byte
        session.start_time = start_byte / session.bytes_per_second

    def _on_chunk(self, segments: list[TranscriptSegment]) -> None:
        if segments:
            self._segments = merge_segments(self._segments, segments, self._config.merge.gap_epsilon)
        self._publish()

    def _settle(self, session: Session, task: asyncio.Task) -> None:
        # A task cancelled before its first step never enters _run's handlers.
        if session.state == SessionState.TRANSCRIBING and task.done():
            self._finish_cancelled(session)

    def _finish_cancelled(self, session: Session) -> None:
        log.info('Session cancelled at byte %d', session.processed_offset)
        self._segments.sort(key=lambda seg: seg.start)
        session.state = SessionState.ERROR
        session.progress = 0.0
        session.error_code = TranscriptionCancelled.code
        session.error_message = 'Transcription cancelled'
        self._publish()

    def _fail(self, session: Session, code: str, message: str) -> None:
        session.state = SessionState.ERROR
        session.error_code = code
        session.error_message = message
        self._publish()

    def _publish(self) -> None:
        if self._on_update is not None:
            self._on_update(self.snapshot())
