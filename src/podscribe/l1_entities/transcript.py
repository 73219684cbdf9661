"""Transcript segment entity and timeline lookup."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field


def format_wall_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS for playback-time display."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f'{hours:02d}:{minutes:02d}:{secs:02d}'


class TranscriptSegment(BaseModel):
    """A span of recognized text on the playback timeline."""

    text: str
    start: float = Field(description='Playback offset in seconds')
    end: float = Field(description='Playback offset in seconds')

    def shifted(self, offset: float) -> TranscriptSegment:
        return self.model_copy(update={'start': self.start + offset, 'end': self.end + offset})


def find_segment_index(
    segments: Sequence[TranscriptSegment],
    time: float,
    tolerance: float = 0.1,
) -> int:
    """Binary-search the segment playing at *time*.

    A segment matches when ``start - tolerance <= time < end + tolerance``.
    Without a match the insertion point is returned, clamped to the list
    bounds. An empty transcript yields -1.
    """
    if not segments:
        return -1

    left = 0
    right = len(segments) - 1
    while left <= right:
        mid = (left + right) // 2
        seg = segments[mid]
        if seg.start - tolerance <= time < seg.end + tolerance:
            return mid
        if time < seg.start - tolerance:
            right = mid - 1
        else:
            left = mid + 1

    if left >= len(segments):
        return len(segments) - 1
    if right < 0:
        return 0
    return left
