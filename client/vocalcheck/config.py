"""Detector settings resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field


class DetectorSettings(BaseModel):
    server_url: str = Field(default=os.getenv("VOCALCHECK_SERVER_URL", "http://127.0.0.1:5000"))
    timeout: float = Field(default=float(os.getenv("VOCALCHECK_TIMEOUT", "10")))
    sample_rate: int = Field(default=int(os.getenv("VOCALCHECK_SAMPLE_RATE", "44100")))
    segment_ms: int = Field(default=int(os.getenv("VOCALCHECK_SEGMENT_MS", "200")))
    silence_threshold: float = Field(
        default=float(os.getenv("VOCALCHECK_SILENCE_THRESHOLD", "0.01"))
    )
    history_size: int = Field(default=int(os.getenv("VOCALCHECK_HISTORY_SIZE", "15")))
    result_limit: int = Field(default=int(os.getenv("VOCALCHECK_RESULT_LIMIT", "20")))
    status_interval: float = Field(
        default=float(os.getenv("VOCALCHECK_STATUS_INTERVAL", "30"))
    )


@lru_cache()
def get_settings() -> DetectorSettings:
    return DetectorSettings()
