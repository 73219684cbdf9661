"""Cooperative cancellation token passed through every pipeline suspension point."""

from __future__ import annotations

import threading

from podscribe.l1_entities.errors import TranscriptionCancelled


class CancellationToken:
    """One-shot cancellation flag. Safe to set from any thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TranscriptionCancelled('Transcription cancelled')
