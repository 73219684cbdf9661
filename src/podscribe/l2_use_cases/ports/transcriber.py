"""Port: speech-to-text recognition engine."""

from __future__ import annotations

from typing import Protocol

import numpy as np
from pydantic import BaseModel

from podscribe.l1_entities.transcript import TranscriptSegment


class DecodeOptions(BaseModel):
    """Fixed per-session decode configuration passed to every recognition call."""

    language: str | None = None  # None = auto-detect
    word_timestamps: bool = False


class Transcriber(Protocol):
    """Abstract transcription engine. Zero framework types leak through."""

    def load_model(self, model_path: str) -> None:
        """Load the transcription model from the given path."""
        ...

    def transcribe(self, audio: np.ndarray, options: DecodeOptions) -> list[TranscriptSegment]:
        """Transcribe a PCM buffer. Segment times are relative to the buffer start."""
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...
