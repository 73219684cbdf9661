"""Use case: buffer streamed bytes into fixed-size decode windows."""

from __future__ import annotations

from podscribe.l1_entities.chunk import DEFAULT_CHUNK_SIZE, AudioChunk


class ChunkAssembler:
    """Accumulates raw bytes and cuts them into chunks of exactly ``threshold`` bytes.

    Does NO I/O itself — bytes are fed in via ``feed()``, the short tail comes
    out of ``flush()`` once the source is exhausted.
    """

    def __init__(self, threshold: int = DEFAULT_CHUNK_SIZE) -> None:
        if threshold <= 0:
            raise ValueError(f'Chunk threshold must be positive, got {threshold}')
        self._threshold = threshold
        self._buffer = bytearray()
        self._consumed = 0  # bytes already emitted in chunks

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def pending(self) -> int:
        """Bytes buffered but not yet emitted."""
        return len(self._buffer)

    def feed(self, data: bytes) -> list[AudioChunk]:
        """Append *data*; return every full chunk now available, in stream order."""
        self._buffer.extend(data)
        chunks: list[AudioChunk] = []
        while len(self._buffer) >= self._threshold:
            chunks.append(self._emit(self._threshold))
        return chunks

    def flush(self) -> AudioChunk | None:
        """Emit the remaining bytes as a final short chunk, or None if nothing is left."""
        if not self._buffer:
            return None
        return self._emit(len(self._buffer))

    def _emit(self, size: int) -> AudioChunk:
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        self._consumed += size
        return AudioChunk(data=data, watermark=self._consumed)
