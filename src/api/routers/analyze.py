"""Uploaded-file analysis endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile

from ..deps.auth import get_api_key
from ..schemas import AnalyzeResponse
from ..services.analysis_service import AnalysisService
from ..settings import APISettings, get_settings

router = APIRouter(prefix="/v1", tags=["analyze"])


def get_service(settings: APISettings = Depends(get_settings)) -> AnalysisService:
    return AnalysisService(settings)


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_audio(
    file: UploadFile = File(...),
    threshold: float | None = Form(None),
    _: str = Depends(get_api_key),
    service: AnalysisService = Depends(get_service),
):
    result = await service.analyze(file, threshold)
    return AnalyzeResponse(**result)
