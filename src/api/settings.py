"""API settings resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import List

from pydantic import BaseModel, Field

from client.vocalcheck.config import DetectorSettings


class APISettings(BaseModel):
    app_name: str = Field(default="VocalCheck API")
    version: str = Field(default="0.1.0")
    api_keys: List[str] = Field(default_factory=lambda: _split_keys())
    max_upload_mb: float = Field(default=float(os.getenv("MAX_UPLOAD_MB", "25")))
    detector: DetectorSettings = Field(default_factory=DetectorSettings)


def _split_keys() -> List[str]:
    raw = os.getenv("API_KEYS") or os.getenv("API_KEY") or ""
    return [key.strip() for key in raw.split(",") if key.strip()]


@lru_cache()
def get_settings() -> APISettings:
    return APISettings()
