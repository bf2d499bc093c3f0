"""Prometheus metrics for the analysis API."""

from __future__ import annotations

import time
from typing import Callable

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, Summary, generate_latest

from client.vocalcheck.pipeline.session import SessionStats

from .deps.auth import get_api_key

REQUEST_COUNTER = Counter(
    "vocalcheck_api_requests_total",
    "Total API requests",
    labelnames=("path", "method", "status"),
)

REQUEST_LATENCY = Histogram(
    "vocalcheck_api_request_latency_seconds",
    "API request latency",
    labelnames=("path", "method"),
)

INFLIGHT_REQUESTS = Gauge(
    "vocalcheck_api_inflight_requests",
    "Requests currently being served",
)

SEGMENT_COUNTER = Counter(
    "vocalcheck_segments_total",
    "Segments processed by uploaded-file analysis",
    labelnames=("outcome",),
)

ANALYSIS_DURATION = Summary(
    "vocalcheck_analysis_seconds",
    "Time spent running the detection pipeline over an upload",
)

UNMATCHED_ROUTE = "unmatched"

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint(_: str = Depends(get_api_key)) -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_session(stats: SessionStats) -> None:
    SEGMENT_COUNTER.labels(outcome="voiced").inc(stats.voiced - stats.failed)
    SEGMENT_COUNTER.labels(outcome="silent").inc(stats.silent)
    SEGMENT_COUNTER.labels(outcome="failed").inc(stats.failed)


def _route_label(request) -> str:
    # unrouted URLs share one label
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_ROUTE)


def instrument_app(app):
    @app.middleware("http")
    async def prometheus_middleware(request, call_next: Callable):  # type: ignore
        started = time.perf_counter()
        status = 500
        INFLIGHT_REQUESTS.inc()
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            INFLIGHT_REQUESTS.dec()
            path = _route_label(request)
            REQUEST_COUNTER.labels(path=path, method=request.method, status=status).inc()
            REQUEST_LATENCY.labels(path=path, method=request.method).observe(time.perf_counter() - started)

    return app
