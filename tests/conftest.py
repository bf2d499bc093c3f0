"""Pytest configuration helpers."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without setting PYTHONPATH."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()


SAMPLE_RATE = 44_100
SEGMENT_FRAMES = SAMPLE_RATE // 5


def sine_wave(duration_s: float, sample_rate: int = SAMPLE_RATE, amplitude: float = 0.5) -> np.ndarray:
    length = int(round(duration_s * sample_rate))
    t = np.arange(length) / sample_rate
    return (np.sin(2 * np.pi * 220 * t) * amplitude).astype(np.float32)


@pytest.fixture()
def voiced_audio():
    return sine_wave(1.0)


@pytest.fixture()
def silent_audio():
    return np.zeros(SAMPLE_RATE, dtype=np.float32)


@pytest.fixture()
def make_tone():
    return sine_wave
