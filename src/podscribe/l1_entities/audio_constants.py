"""Audio constants shared by the decoder and the transcription driver."""

SAMPLE_RATE = 16000  # Hz, mono PCM handed to the recognizer
