"""Use case: reconcile per-chunk recognition output into one monotonic transcript.

Fixed-size windows often clip a sentence at the chunk edge. Adjacent segments
are joined back together using a few English syntactic cues, then timestamps
are nudged so the timeline is strictly ordered and non-overlapping.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from podscribe.l1_entities.transcript import TranscriptSegment

GAP_EPSILON = 0.05  # seconds

TERMINAL_PUNCTUATION = ('.', '!', '?')
JOIN_PUNCTUATION = (',', '.', '!', '?')
FUNCTION_WORDS = frozenset({'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to'})

_CONTROL_TOKEN = re.compile(r'<\|.*?\|>')
_WHITESPACE = re.compile(r'\s+')
_WORD = re.compile(r"[A-Za-z']+")


def clean_transcript_text(text: str) -> str:
    """Strip recognizer control tokens such as ``<|en|>`` and collapse whitespace."""
    return _WHITESPACE.sub(' ', _CONTROL_TOKEN.sub('', text)).strip()


def _last_word(text: str) -> str:
    words = _WORD.findall(text)
    return words[-1].lower() if words else ''


def _first_word(text: str) -> str:
    match = _WORD.match(text)
    return match.group(0).lower() if match else ''


def should_merge(left: str, right: str) -> bool:
    """Decide whether two cleaned, adjacent texts are halves of one sentence."""
    if left.endswith(TERMINAL_PUNCTUATION):
        return False
    return (
        _last_word(left) in FUNCTION_WORDS
        or (bool(right) and right[0].islower())
        or left.endswith(',')
        or _first_word(right) in FUNCTION_WORDS
    )


def join_texts(left: str, right: str) -> str:
    if not left:
        return right
    if not right:
        return left
    if right.startswith(JOIN_PUNCTUATION):
        return left + right
    return f'{left} {right}'


def merge_segments(
    existing: Sequence[TranscriptSegment],
    incoming: Sequence[TranscriptSegment],
    gap_epsilon: float = GAP_EPSILON,
) -> list[TranscriptSegment]:
    """Return the merged transcript; neither input is mutated.

    The result is sorted by start and satisfies ``out[i].end <= out[i + 1].start``.
    """
    segments = [
        seg.model_copy(update={'text': clean_transcript_text(seg.text)}) for seg in [*existing, *incoming]
    ]
    segments.sort(key=lambda seg: seg.start)

    # Re-test the same index after a merge: the joined segment may absorb its new neighbour too.
    index = 0
    while index < len(segments) - 1:
        left = segments[index]
        right = segments[index + 1]
        if should_merge(left.text, right.text):
            segments[index] = TranscriptSegment(
                text=join_texts(left.text, right.text),
                start=min(left.start, right.start),
                end=max(left.end, right.end),
            )
            del segments[index + 1]
        else:
            index += 1

    return enforce_gaps(segments, gap_epsilon)


def enforce_gaps(segments: list[TranscriptSegment], gap_epsilon: float = GAP_EPSILON) -> list[TranscriptSegment]:
    """Nudge starts forward in place so each segment begins after the previous one ends."""
    for i, seg in enumerate(segments):
        start, end = seg.start, seg.end
        if i > 0 and start <= segments[i - 1].end:
            start = segments[i - 1].end + gap_epsilon
        if end <= start:
            end = start + gap_epsilon
        if (start, end) != (seg.start, seg.end):
            segments[i] = seg.model_copy(update={'start': start, 'end': end})
    return segments
