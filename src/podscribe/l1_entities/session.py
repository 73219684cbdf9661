"""Session entities — one transcription attempt and its read-only snapshot."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict

from podscribe.l1_entities.transcript import TranscriptSegment


class SessionState(enum.Enum):
    NOT_INITIALIZED = 'not_initialized'
    NOT_STARTED = 'not_started'
    TRANSCRIBING = 'transcribing'
    COMPLETED = 'completed'
    ERROR = 'error'


class Session(BaseModel):
    """Mutable state of the live session. Owned by the controller only."""

    url: str = ''
    state: SessionState = SessionState.NOT_STARTED
    progress: float | None = 0.0
    start_time: float = 0.0
    start_byte: int = 0
    byte_offset: int = 0
    processed_offset: int = 0
    bitrate: int | None = None
    sample_cursor: int = 0
    error_code: str | None = None
    error_message: str = ''

    @property
    def bytes_per_second(self) -> float | None:
        if not self.bitrate:
            return None
        return self.bitrate / 8

    @property
    def current_time(self) -> float:
        """Playback time at the current byte offset (constant-bitrate estimate)."""
        bps = self.bytes_per_second
        if bps is None:
            return self.start_time
        return self.byte_offset / bps


class SessionSnapshot(BaseModel):
    """Frozen view of the session handed to observers."""

    model_config = ConfigDict(frozen=True)

    state: SessionState
    progress: float | None
    start_time: float
    byte_offset: int
    bitrate: int | None
    segments: tuple[TranscriptSegment, ...]
    current_segment_index: int
    error_code: str | None = None
    error_message: str = ''

    @property
    def cancelled(self) -> bool:
        return self.state == SessionState.ERROR and self.error_code == 'cancelled'
