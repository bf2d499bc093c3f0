"""Pydantic schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class VerdictModel(BaseModel):
    id: str
    timestamp: datetime
    confidence: float
    is_authentic: bool
    details: str
    segment_index: int | None = None
    outcome: str | None = None


class SessionStatsModel(BaseModel):
    segments: int = 0
    voiced: int = 0
    silent: int = 0
    failed: int = 0


class AnalyzeResponse(BaseModel):
    filename: str
    stats: SessionStatsModel
    verdict: VerdictModel
    results: List[VerdictModel] = Field(default_factory=list)
    error: str | None = None


class HealthResponse(BaseModel):
    ok: bool
    classifier: str
    timestamp: datetime
