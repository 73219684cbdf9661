"""Tests for the headless runner — real container, fake gateways."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from podscribe.l1_entities.session import SessionSnapshot, SessionState
from podscribe.l1_entities.transcript import TranscriptSegment
from podscribe.l4_frameworks_and_drivers.config import build_app_config
from podscribe.l4_frameworks_and_drivers.container import DependencyContainer
from podscribe.l4_frameworks_and_drivers.headless_runner import (
    _ProgressPrinter,  # noqa: PLC2701 -- testing private helper
    run_headless,
    transcribe_url,
)
from tests.conftest import MPEG1_128K_HEADER, FakeAudioDecoder, FakeRangeFetcher, FakeTranscriber

_CONTAINER = 'podscribe.l4_frameworks_and_drivers.headless_runner.DependencyContainer'
URL = 'https://example.com/episode.mp3'
BODY = MPEG1_128K_HEADER + b'\x00' * 1996


@pytest.fixture
def config():
    return build_app_config({'stream': {'chunk_size': 1000}, 'transcription': {'model': 'm.bin'}})


def _snapshot(state: SessionState, progress: float | None, n_segments: int = 0) -> SessionSnapshot:
    return SessionSnapshot(
        state=state,
        progress=progress,
        start_time=0.0,
        byte_offset=0,
        bitrate=None,
        segments=tuple(TranscriptSegment(text='x', start=i, end=i + 0.5) for i in range(n_segments)),
        current_segment_index=-1,
    )


def _patched_container(transcriber: FakeTranscriber, fetcher: FakeRangeFetcher, load_error: Exception | None = None):
    """Replace DependencyContainer with one wired to fakes."""

    def factory(config, on_update=None):
        container = DependencyContainer(
            config,
            transcriber=transcriber,
            decoder=FakeAudioDecoder(samples_per_byte=16),
            fetcher=fetcher,
            on_update=on_update,
        )
        container.load_transcriber = MagicMock(return_value=transcriber, side_effect=load_error)
        return container

    return patch(_CONTAINER, side_effect=factory)


class TestProgressPrinter:
    def test_prints_whole_percent_changes(self, capsys):
        printer = _ProgressPrinter()
        printer(_snapshot(SessionState.TRANSCRIBING, 0.101, 1))
        printer(_snapshot(SessionState.TRANSCRIBING, 0.105, 2))
        printer(_snapshot(SessionState.TRANSCRIBING, 0.5, 3))

        err = capsys.readouterr().err.splitlines()
        assert err == ['   10%  1 segments', '   50%  3 segments']

    def test_ignores_unknown_progress_and_idle_states(self, capsys):
        printer = _ProgressPrinter()
        printer(_snapshot(SessionState.TRANSCRIBING, None))
        printer(_snapshot(SessionState.COMPLETED, 1.0))

        assert capsys.readouterr().err == ''


class TestTranscribeUrl:
    @pytest.mark.asyncio
    async def test_runs_to_completion_and_closes(self, config):
        transcriber = FakeTranscriber(segments=[TranscriptSegment(text='Hello.', start=0.0, end=0.5)])
        fetcher = FakeRangeFetcher(body=BODY, block_size=1000)
        container = DependencyContainer(
            config, transcriber=transcriber, decoder=FakeAudioDecoder(samples_per_byte=16), fetcher=fetcher
        )

        snapshot = await transcribe_url(container, URL, 0.0)

        assert snapshot.state == SessionState.COMPLETED
        assert len(snapshot.segments) == 2
        assert fetcher.closed
        assert transcriber.closed


class TestRunHeadless:
    def test_prints_transcript(self, config, capsys):
        transcriber = FakeTranscriber()
        transcriber.queue_results(
            [TranscriptSegment(text='Welcome back.', start=0.0, end=0.5)],
            [TranscriptSegment(text='Today we talk.', start=0.25, end=0.75)],
        )
        fetcher = FakeRangeFetcher(body=BODY, block_size=1000)

        with _patched_container(transcriber, fetcher):
            code = run_headless(URL, 0.0, config)

        out = capsys.readouterr().out.splitlines()
        assert code == 0
        assert out == ['[00:00:00] Welcome back.', '[00:00:01] Today we talk.']

    def test_model_load_failure(self, config, capsys):
        fetcher = FakeRangeFetcher(body=BODY)

        with _patched_container(FakeTranscriber(), fetcher, load_error=RuntimeError('bad model file')):
            code = run_headless(URL, 0.0, config)

        assert code == 1
        assert 'bad model file' in capsys.readouterr().err
        assert fetcher.open_calls == []

    def test_session_failure(self, config, capsys):
        fetcher = FakeRangeFetcher(body=BODY, status_code=404)

        with _patched_container(FakeTranscriber(), fetcher):
            code = run_headless(URL, 0.0, config)

        assert code == 1
        assert '[invalid_response]' in capsys.readouterr().err
