"""Fixed-interval segmenter over a continuous audio source."""

from __future__ import annotations

import logging
from typing import AsyncIterator

import numpy as np

from ..errors import AcquisitionError
from .sources import AudioSource
from .types import AudioSegment

LOGGER = logging.getLogger("vocalcheck.segmenter")


class Segmenter:
    """Slice a stream into contiguous, non-overlapping fixed-length segments.

    Incoming blocks of any size are copied into a preallocated buffer of
    exactly one segment; each time it fills, a copy is emitted and the write
    position wraps to zero. Samples are never dropped or duplicated at
    segment boundaries. A trailing partial segment at end of stream is
    discarded so that every emitted segment has the same duration.
    """

    def __init__(self, segment_ms: int = 200) -> None:
        if segment_ms <= 0:
            raise ValueError("segment_ms must be positive")
        self.segment_ms = segment_ms

    def frames_for(self, sample_rate: int) -> int:
        return max(1, int(round(sample_rate * self.segment_ms / 1000.0)))

    async def segments(self, source: AudioSource) -> AsyncIterator[AudioSegment]:
        rate = source.sample_rate
        channels = source.channels
        frames = self.frames_for(rate)
        buffer = np.zeros((frames, channels), dtype=np.float32)
        fill = 0
        index = 0
        start_sample = 0
        try:
            async for block in source.blocks():
                data = np.asarray(block, dtype=np.float32)
                if data.ndim == 1:
                    data = data.reshape(-1, 1)
                if data.shape[1] != channels:
                    raise AcquisitionError(
                        f"Source delivered {data.shape[1]} channel(s), expected {channels}"
                    )
                pos = 0
                while pos < data.shape[0]:
                    take = min(frames - fill, data.shape[0] - pos)
                    buffer[fill : fill + take] = data[pos : pos + take]
                    fill += take
                    pos += take
                    if fill == frames:
                        yield AudioSegment(
                            samples=buffer.copy(),
                            sample_rate=rate,
                            channels=channels,
                            index=index,
                            start_sample=start_sample,
                        )
                        index += 1
                        start_sample += frames
                        fill = 0
        except AcquisitionError:
            raise
        except Exception as exc:
            raise AcquisitionError(f"Audio source failed: {exc}") from exc
        if fill:
            LOGGER.debug("Dropping %d trailing frame(s) shorter than one segment", fill)
        LOGGER.debug("Stream ended after %d segment(s)", index)


__all__ = ["Segmenter"]
