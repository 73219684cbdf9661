"""Gateway: ffmpeg audio decoder — implements AudioDecoder port via subprocess pipes."""

from __future__ import annotations

import logging
import shutil
import subprocess  # noqa: S404 -- intentional: shells out to ffmpeg with a fixed arg list, not shell=True

import numpy as np

from podscribe.l1_entities.audio_constants import SAMPLE_RATE
from podscribe.l1_entities.errors import AudioProcessingError

log = logging.getLogger('podscribe.decode')

_FFMPEG_TIMEOUT = 300  # seconds


class FfmpegAudioDecoder:
    """Pipes compressed bytes through ffmpeg, returning float32 mono PCM.

    Chunks are cut at arbitrary byte positions, so the first and last frame
    of a slice are often truncated. ffmpeg is told to skip corrupt frames;
    a few milliseconds lost per boundary is accepted.
    """

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        input_format: str | None = 'mp3',
        timeout: float = _FFMPEG_TIMEOUT,
    ) -> None:
        self._sample_rate = sample_rate
        self._input_format = input_format
        self._timeout = timeout

    def _command(self) -> list[str]:
        cmd = ['ffmpeg', '-v', 'quiet', '-err_detect', 'ignore_err']
        if self._input_format:
            cmd += ['-f', self._input_format]
        cmd += ['-i', 'pipe:0', '-ar', str(self._sample_rate), '-ac', '1', '-f', 'f32le', 'pipe:1']
        return cmd

    def decode(self, data: bytes) -> np.ndarray:
        """Decode *data*; an undecodable slice yields an empty array.

        Raises:
            AudioProcessingError: ffmpeg is missing, failed to start, timed out,
                                  or exited non-zero without producing audio.
        """
        if not data:
            return np.array([], dtype=np.float32)

        if shutil.which('ffmpeg') is None:
            raise AudioProcessingError(
                'ffmpeg is required but not found on PATH.\n  macOS:  brew install ffmpeg\n  Debian: apt install ffmpeg'
            )

        try:
            result = subprocess.run(  # noqa: S603
                self._command(),
                input=data,
                capture_output=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise AudioProcessingError(f'ffmpeg timed out after {self._timeout}s decoding {len(data)} bytes') from exc
        except OSError as exc:
            raise AudioProcessingError(f'Failed to launch ffmpeg: {exc}') from exc

        if result.returncode != 0 and not result.stdout:
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            raise AudioProcessingError(f'ffmpeg exited with code {result.returncode}\n{stderr}')

        # f32le frames are 4 bytes; a killed pipe can leave a partial tail.
        usable = len(result.stdout) - len(result.stdout) % 4
        audio = np.frombuffer(result.stdout[:usable], dtype=np.float32)
        if len(audio) == 0:
            log.debug('No decodable audio in %d-byte slice', len(data))
        return audio
