"""Domain error types for the streaming transcription pipeline."""

from __future__ import annotations


class TranscriptionError(Exception):
    """Base class for every session-fatal pipeline failure."""

    code = 'transcription_error'


class InvalidURLError(TranscriptionError):
    """Raised when the audio URL cannot be used for an HTTP request."""

    code = 'invalid_url'


class InvalidResponseError(TranscriptionError):
    """Raised when the server answers a range request with anything but 200/206."""

    code = 'invalid_response'

    def __init__(self, status_code: int, message: str = '') -> None:
        super().__init__(message or f'Unexpected HTTP status {status_code}')
        self.status_code = status_code


class StreamFetchError(TranscriptionError):
    """Raised on transport failure or when the resource timeout expires."""

    code = 'network_failed'


class AudioProcessingError(TranscriptionError):
    """Raised when a compressed chunk cannot be converted to PCM."""

    code = 'audio_processing_failed'


class TranscriptionFailedError(TranscriptionError):
    """Raised when the recognition engine fails on a chunk."""

    code = 'transcription_failed'


class ModelNotLoadedError(TranscriptionError):
    """Raised when no recognition engine is available."""

    code = 'model_not_loaded'


class TranscriptionCancelled(TranscriptionError):
    """Raised at a suspension point once cancellation has been requested."""

    code = 'cancelled'
