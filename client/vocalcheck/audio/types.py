"""Dataclasses shared across audio helpers."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(slots=True)
class AudioSegment:
    """Fixed-duration slice of captured audio, shaped (frames, channels)."""

    samples: np.ndarray
    sample_rate: int
    channels: int
    index: int = 0
    start_sample: int = 0

    @property
    def num_frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return self.num_frames / float(self.sample_rate)


@dataclass(frozen=True, slots=True)
class EncodedClip:
    """Mono 16-bit PCM WAV bytes derived from one segment."""

    data: bytes
    sample_rate: int
    num_samples: int
    segment_index: int = 0


@dataclass(frozen=True, slots=True)
class SilenceVerdict:
    is_silent: bool
    rms: float | None
    error: str | None = None
