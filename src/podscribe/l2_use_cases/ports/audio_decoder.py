"""Port: compressed audio decoder."""

from __future__ import annotations

from typing import Protocol

import numpy as np


class AudioDecoder(Protocol):
    """Turns a slice of a compressed stream into mono float32 PCM."""

    def decode(self, data: bytes) -> np.ndarray:
        """Decode *data* best-effort; a slice may start or end mid-frame."""
        ...
