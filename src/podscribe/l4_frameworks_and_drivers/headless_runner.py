"""Headless runner — transcribe one remote episode from the terminal."""

from __future__ import annotations

import asyncio
import logging
import sys

from podscribe.l1_entities.config import AppConfig
from podscribe.l1_entities.session import SessionSnapshot, SessionState
from podscribe.l1_entities.transcript import format_wall_time
from podscribe.l4_frameworks_and_drivers.container import DependencyContainer

log = logging.getLogger('podscribe.cli')


def _err(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


class _ProgressPrinter:
    """on_update callback: prints whole-percent progress changes to stderr."""

    def __init__(self) -> None:
        self._last: int | None = None

    def __call__(self, snapshot: SessionSnapshot) -> None:
        if snapshot.state != SessionState.TRANSCRIBING or snapshot.progress is None:
            return
        percent = int(snapshot.progress * 100)
        if percent != self._last:
            self._last = percent
            _err(f'  {percent:3d}%  {len(snapshot.segments)} segments')


async def transcribe_url(container: DependencyContainer, url: str, start_time: float) -> SessionSnapshot:
    """Run one session to the end and return its final snapshot."""
    try:
        await container.controller.start(url, start_time)
        return await container.controller.wait()
    finally:
        await container.aclose()


def run_headless(url: str, start_time: float, config: AppConfig) -> int:
    """Load the model, stream *url* from *start_time*, print the transcript. Returns an exit code."""
    container = DependencyContainer(config, on_update=_ProgressPrinter())

    _err(f'Whisper model: {config.transcription.model}')
    try:
        container.load_transcriber()
    except Exception as exc:
        log.error('Failed to load model: %s', exc, exc_info=True)
        _err(f'Error loading model: {exc}')
        return 1

    _err(f'Transcribing {url} from {format_wall_time(start_time)}...')
    snapshot = asyncio.run(transcribe_url(container, url, start_time))

    for seg in snapshot.segments:
        print(f'[{format_wall_time(seg.start)}] {seg.text}')

    if snapshot.state != SessionState.COMPLETED:
        _err(f'Transcription failed [{snapshot.error_code}]: {snapshot.error_message}')
        return 1

    _err(f'\nTranscription complete — {len(snapshot.segments)} segments.')
    return 0
