"""Runs the detection pipeline over uploaded audio files."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, UploadFile

from client.vocalcheck.audio.sources import FileSource
from client.vocalcheck.errors import AcquisitionError
from client.vocalcheck.pipeline.aggregator import VerdictRecord
from client.vocalcheck.pipeline.session import DetectionSession
from client.vocalcheck.services.inference import InferenceClient

from ..metrics import ANALYSIS_DURATION, record_session
from ..settings import APISettings

LOGGER = logging.getLogger("vocalcheck.api.analysis")


class AnalysisService:
    """Decode an upload once, then segment, gate, classify and aggregate it."""

    def __init__(self, settings: APISettings, client: Optional[InferenceClient] = None) -> None:
        self.settings = settings
        self.client = client

    async def analyze(self, file: UploadFile, threshold: float | None = None) -> Dict[str, Any]:
        payload = await file.read()
        limit = int(self.settings.max_upload_mb * 1024 * 1024)
        if len(payload) > limit:
            raise HTTPException(
                status_code=413,
                detail=f"Upload exceeds {self.settings.max_upload_mb:g} MB",
            )
        detector = self.settings.detector
        if threshold is not None:
            detector = detector.model_copy(update={"silence_threshold": threshold})
        session = DetectionSession(FileSource(payload), detector, client=self.client)
        try:
            with ANALYSIS_DURATION.time():
                verdict = await session.run()
        except AcquisitionError as exc:
            LOGGER.info("Rejected upload %s: %s", file.filename, exc)
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        record_session(session.stats)
        LOGGER.info(
            "Analyzed %s: %d segment(s), authentic=%s confidence=%.1f",
            file.filename,
            session.stats.segments,
            verdict.is_authentic,
            verdict.confidence,
        )
        return {
            "filename": file.filename or "upload",
            "stats": {
                "segments": session.stats.segments,
                "voiced": session.stats.voiced,
                "silent": session.stats.silent,
                "failed": session.stats.failed,
            },
            "verdict": _serialize(verdict),
            "results": [_serialize(record) for record in session.feed.list()],
            "error": session.feed.error,
        }


def _serialize(record: VerdictRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "timestamp": record.timestamp,
        "confidence": record.confidence,
        "is_authentic": record.is_authentic,
        "details": record.details,
        "segment_index": record.segment_index,
        "outcome": record.outcome.value if record.outcome else None,
    }
