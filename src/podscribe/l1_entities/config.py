"""Configuration Pydantic models — pure schema, no infrastructure defaults."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StreamConfig(BaseModel):
    chunk_size: int = Field(gt=0)
    probe_bytes: int = Field(gt=0)
    default_bitrate: int = Field(gt=0)
    request_timeout: float  # seconds per read/connect
    resource_timeout: float  # seconds for a whole transfer
    connect_retries: int = 0


class TranscriptionConfig(BaseModel):
    model: str
    language: str | None = None  # None = auto-detect
    word_timestamps: bool = False


class MergeConfig(BaseModel):
    gap_epsilon: float
    lookup_tolerance: float


class AppConfig(BaseModel):
    stream: StreamConfig
    transcription: TranscriptionConfig
    merge: MergeConfig
