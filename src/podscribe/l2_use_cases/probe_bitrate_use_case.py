"""Use case: estimate the stream bitrate from a small byte prefix."""

from __future__ import annotations

import logging

from podscribe.l1_entities.errors import InvalidResponseError, StreamFetchError
from podscribe.l1_entities.mpeg_header import audio_stream_offset, scan_bitrate
from podscribe.l2_use_cases.ports.range_fetcher import RangeFetcher

log = logging.getLogger('podscribe.probe')

DEFAULT_BITRATE = 128_000
DEFAULT_PROBE_BYTES = 16_384


class ProbeBitrateUseCase:
    """Reads the first frame header after any ID3v2 tag.

    Never fails: the bitrate only converts a start time into a byte offset, so
    a wrong guess just lands the seek slightly off.
    """

    def __init__(
        self,
        fetcher: RangeFetcher,
        probe_bytes: int = DEFAULT_PROBE_BYTES,
        default_bitrate: int = DEFAULT_BITRATE,
    ) -> None:
        self._fetcher = fetcher
        self._probe_bytes = probe_bytes
        self._default_bitrate = default_bitrate

    async def execute(self, url: str) -> int:
        try:
            head = await self._fetcher.fetch_range(url, 0, self._probe_bytes)
            offset = audio_stream_offset(head)
            if offset == 0:
                window = head
            else:
                log.debug('ID3v2 tag found, audio frames start at byte %d', offset)
                window = await self._fetcher.fetch_range(url, offset, self._probe_bytes)
        except (InvalidResponseError, StreamFetchError) as exc:
            log.warning('Bitrate probe failed (%s); assuming %d bps', exc, self._default_bitrate)
            return self._default_bitrate

        bitrate = scan_bitrate(window)
        if bitrate is None:
            log.warning('No valid frame header in %d probed bytes; assuming %d bps', len(window), self._default_bitrate)
            return self._default_bitrate

        log.info('Probed bitrate %d bps', bitrate)
        return bitrate
