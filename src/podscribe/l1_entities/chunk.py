"""Audio chunk entity — one decode/recognition unit of compressed bytes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CHUNK_SIZE = 262_144  # 256 KiB


class AudioChunk(BaseModel):
    """Immutable window of raw compressed bytes."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    watermark: int = Field(description='Bytes consumed from the stream up to the end of this chunk')

    def __len__(self) -> int:
        return len(self.data)
