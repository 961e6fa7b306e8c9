"""Health probe and metrics routes."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from secretwatch import __version__
from secretwatch.api.schemas import HealthResponse

router = APIRouter()


def _queue_depth(request: Request) -> int:
    queue = request.app.state.queue
    return len(queue) if queue is not None else 0


@router.get("/healthz", response_model=HealthResponse)
async def healthz(request: Request) -> HealthResponse:
    """Liveness: the process is serving requests."""
    return HealthResponse(status="ok", version=__version__, queue_depth=_queue_depth(request))


@router.get("/readyz", response_model=HealthResponse)
async def readyz(request: Request) -> JSONResponse:
    """Readiness: the reconcile queue is running."""
    queue = request.app.state.queue
    ready = queue is not None and queue.running
    body = HealthResponse(
        status="ready" if ready else "not_ready",
        version=__version__,
        queue_depth=_queue_depth(request),
    )
    return JSONResponse(status_code=200 if ready else 503, content=body.model_dump())


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    """Prometheus text exposition of the injected registry."""
    payload, content_type = request.app.state.metrics.render()
    return Response(content=payload, media_type=content_type)
