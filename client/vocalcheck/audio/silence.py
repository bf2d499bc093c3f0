"""Energy-based silence gate."""

from __future__ import annotations

import logging

import numpy as np

from ..errors import DecodeError
from .types import EncodedClip, SilenceVerdict
from .wav import decode_wav

LOGGER = logging.getLogger("vocalcheck.silence")

DEFAULT_THRESHOLD = 0.01


def compute_rms(samples: np.ndarray) -> float:
    data = np.asarray(samples, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(data**2)))


class SilenceGate:
    """Classifies clips as silent or voiced against a fixed RMS threshold."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD) -> None:
        self.threshold = float(threshold)

    def check(self, clip: EncodedClip) -> SilenceVerdict:
        try:
            samples, _rate = decode_wav(clip.data)
        except DecodeError as exc:
            # Fail open so the segment still reaches the classifier.
            LOGGER.warning("Silence check failed for segment %s: %s", clip.segment_index, exc)
            return SilenceVerdict(is_silent=False, rms=None, error=str(exc))
        rms = compute_rms(samples)
        return SilenceVerdict(is_silent=rms < self.threshold, rms=rms)


__all__ = ["SilenceGate", "compute_rms", "DEFAULT_THRESHOLD"]
