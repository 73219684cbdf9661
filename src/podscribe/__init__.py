"""podscribe — progressive transcription of remote podcast audio."""

__version__ = '0.1.0'
