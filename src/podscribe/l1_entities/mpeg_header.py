"""MPEG audio bitstream parsing — just enough to estimate a constant bitrate."""

from __future__ import annotations

ID3_MAGIC = b'ID3'
ID3_HEADER_SIZE = 10

# kbps, indexed by [version bits][bitrate index]. Version bits: 0 = MPEG 2.5,
# 1 = reserved, 2 = MPEG 2, 3 = MPEG 1. Layer is not distinguished.
BITRATE_TABLE_KBPS: tuple[tuple[int, ...], ...] = (
    (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160, 0),
    (0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0),
    (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160, 0),
    (0, 32, 40, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320, 0),
)

_RESERVED_VERSION = 1
_NO_LAYER = 0
_FREE_FORMAT_INDEX = 0
_BAD_INDEX = 15


def id3_tag_size(data: bytes) -> int | None:
    """Return the ID3v2 tag body size, or None if *data* has no ID3v2 header.

    The size lives in bytes 6-9 as a synchsafe integer (7 bits per byte).
    """
    if len(data) < ID3_HEADER_SIZE or data[:3] != ID3_MAGIC:
        return None
    return (data[6] & 0x7F) << 21 | (data[7] & 0x7F) << 14 | (data[8] & 0x7F) << 7 | (data[9] & 0x7F)


def audio_stream_offset(data: bytes) -> int:
    """Offset of the first byte after any leading ID3v2 tag."""
    size = id3_tag_size(data)
    if size is None:
        return 0
    return size + ID3_HEADER_SIZE


def frame_bitrate(data: bytes, offset: int = 0) -> int | None:
    """Decode the frame header at *offset*; return bits/second or None if invalid."""
    if offset < 0 or offset + 4 > len(data):
        return None

    b1 = data[offset + 1]
    if data[offset] != 0xFF or (b1 & 0xE0) != 0xE0:
        return None

    version = (b1 & 0x18) >> 3
    layer = (b1 & 0x06) >> 1
    index = (data[offset + 2] & 0xF0) >> 4
    if version == _RESERVED_VERSION or layer == _NO_LAYER or index in (_FREE_FORMAT_INDEX, _BAD_INDEX):
        return None

    kbps = BITRATE_TABLE_KBPS[version][index]
    return kbps * 1000 if kbps > 0 else None


def scan_bitrate(data: bytes, start: int = 0) -> int | None:
    """Scan forward from *start* for the first valid frame header."""
    for offset in range(max(start, 0), len(data) - 3):
        bitrate = frame_bitrate(data, offset)
        if bitrate is not None:
            return bitrate
    return None
