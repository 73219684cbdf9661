"""Gateway: whisper.cpp transcriber — implements Transcriber port."""

from __future__ import annotations

import contextlib
import logging
import os

import numpy as np
from pywhispercpp.model import Model

from podscribe.l1_entities.errors import ModelNotLoadedError
from podscribe.l1_entities.transcript import TranscriptSegment
from podscribe.l2_use_cases.ports.transcriber import DecodeOptions

log = logging.getLogger('podscribe.whisper')


@contextlib.contextmanager
def _suppress_c_stdout():
    """Redirect C-level stdout and stderr to /dev/null.

    whisper.cpp prints init/progress messages directly via C fprintf,
    bypassing Python's logging.
    """
    devnull = os.open(os.devnull, os.O_WRONLY)
    old_stdout = os.dup(1)
    old_stderr = os.dup(2)
    try:
        os.dup2(devnull, 1)
        os.dup2(devnull, 2)
        yield
    finally:
        os.dup2(old_stdout, 1)
        os.dup2(old_stderr, 2)
        os.close(devnull)
        os.close(old_stdout)
        os.close(old_stderr)


class WhisperTranscriber:
    """pywhispercpp adapter. Maps DecodeOptions to whisper.cpp params
    and converts centisecond timestamps to seconds."""

    def __init__(self) -> None:
        self._model: Model | None = None

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def close(self) -> None:
        if self._model is not None:
            with _suppress_c_stdout():
                del self._model
                self._model = None

    def load_model(self, model_path: str) -> None:
        with _suppress_c_stdout():
            self._model = Model(model_path, print_progress=False, print_realtime=False)
        log.info('Loaded whisper model %s', model_path)

    def transcribe(self, audio: np.ndarray, options: DecodeOptions) -> list[TranscriptSegment]:
        if self._model is None:
            raise ModelNotLoadedError('Model not loaded. Call load_model() first.')

        kwargs: dict = {
            'language': options.language or 'auto',
            'token_timestamps': options.word_timestamps,
        }
        with _suppress_c_stdout():
            raw_segments = self._model.transcribe(audio.astype(np.float32, copy=False), **kwargs)

        return [
            TranscriptSegment(text=seg.text.strip(), start=seg.t0 / 100.0, end=seg.t1 / 100.0)
            for seg in raw_segments
            if seg.text.strip()
        ]
