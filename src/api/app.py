"""FastAPI application factory."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import Depends, FastAPI

from client.vocalcheck.services.inference import InferenceClient

from .deps.auth import get_api_key
from .metrics import instrument_app
from .metrics import router as metrics_router
from .routers import analyze
from .schemas import HealthResponse
from .settings import APISettings, get_settings

LOGGER = logging.getLogger("vocalcheck.api")


def get_inference_client(settings: APISettings = Depends(get_settings)) -> InferenceClient:
    return InferenceClient(settings.detector)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, version=settings.version)
    instrument_app(app)

    @app.get("/welcome")
    async def welcome() -> dict:
        return {
            "name": settings.app_name,
            "version": settings.version,
            "docs": "/docs",
        }

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz(
        _: str = Depends(get_api_key),
        client: InferenceClient = Depends(get_inference_client),
    ) -> HealthResponse:
        try:
            reachable = await client.test_connection()
        finally:
            await client.aclose()
        return HealthResponse(
            ok=True,
            classifier="reachable" if reachable else "unreachable",
            timestamp=datetime.now(timezone.utc),
        )

    app.include_router(analyze.router)
    app.include_router(metrics_router)
    LOGGER.debug("API created for classifier at %s", settings.detector.server_url)
    return app
