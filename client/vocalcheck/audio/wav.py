"""WAV encoding for segments sent to the classifier.

Every clip leaves the pipeline as mono 16-bit PCM WAV. Samples are quantized
to int16 here so soundfile writes the values unchanged.
"""

from __future__ import annotations

import io
from typing import Tuple

import numpy as np
import soundfile as sf

from ..errors import DecodeError
from .types import AudioSegment, EncodedClip

PCM_SCALE = 32767
WAV_FORMATS = {"WAV", "WAVEX"}


def _to_float(samples: np.ndarray) -> np.ndarray:
    data = np.asarray(samples)
    if np.issubdtype(data.dtype, np.integer):
        return data.astype(np.float64) / float(np.iinfo(data.dtype).max + 1)
    return data.astype(np.float64, copy=False)


def _first_channel(samples: np.ndarray) -> np.ndarray:
    if samples.ndim == 1:
        return samples
    return samples[:, 0]


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linear-interpolation resampler for a mono buffer."""
    if source_rate == target_rate or samples.size == 0:
        return samples
    duration = samples.size / float(source_rate)
    target_len = max(1, int(round(duration * target_rate)))
    source_t = np.arange(samples.size) / float(source_rate)
    target_t = np.arange(target_len) / float(target_rate)
    return np.interp(target_t, source_t, samples)


def quantize_pcm16(samples: np.ndarray) -> np.ndarray:
    clamped = np.clip(_to_float(samples), -1.0, 1.0)
    return np.rint(clamped * PCM_SCALE).astype(np.int16)


def encode_wav(segment: AudioSegment, target_rate: int | None = None) -> EncodedClip:
    """Convert a segment into a mono 16-bit PCM WAV clip."""
    mono = _to_float(_first_channel(np.asarray(segment.samples)))
    rate = segment.sample_rate
    if target_rate and target_rate != rate:
        mono = resample(mono, rate, target_rate)
        rate = target_rate
    buffer = io.BytesIO()
    sf.write(buffer, quantize_pcm16(mono), rate, format="WAV", subtype="PCM_16")
    return EncodedClip(
        data=buffer.getvalue(),
        sample_rate=rate,
        num_samples=int(mono.size),
        segment_index=segment.index,
    )


def decode_wav(data: bytes) -> Tuple[np.ndarray, int]:
    """Decode 16-bit PCM WAV bytes into channel 0 samples in [-1, 1]."""
    try:
        with sf.SoundFile(io.BytesIO(data)) as handle:
            if handle.format not in WAV_FORMATS or handle.subtype != "PCM_16":
                raise DecodeError(f"Unsupported encoding: {handle.format}/{handle.subtype}")
            frames = handle.read(dtype="int16", always_2d=True)
            sample_rate = handle.samplerate
    except (RuntimeError, TypeError, ValueError) as exc:
        raise DecodeError(f"Unable to decode WAV: {exc}") from exc
    samples = frames[:, 0].astype(np.float64) / PCM_SCALE
    return np.clip(samples, -1.0, 1.0), int(sample_rate)


__all__ = ["encode_wav", "decode_wav", "quantize_pcm16", "resample"]
