"""FastAPI application factory for the secretwatch operator.

Usage::

    from secretwatch.api.app import create_app

    app = create_app(metrics=metrics, queue=queue)

The factory is used by both the production bootstrap (``secretwatch.app``)
and unit tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from secretwatch.api.routes import router
from secretwatch.api.schemas import ErrorResponse
from secretwatch.observability.metrics import PrometheusMetrics

_log = structlog.get_logger(component="api.app")


def create_app(metrics: PrometheusMetrics, queue: Any = None) -> FastAPI:
    """Create the health/metrics FastAPI application.

    Args:
        metrics: PrometheusMetrics whose registry ``/metrics`` exposes.
        queue:   Optional ReconcileQueue; ``/readyz`` reports 503 until it runs.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from secretwatch import __version__

    app = FastAPI(
        title="secretwatch",
        summary="Secret rotation blast-radius monitor",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )

    app.state.metrics = metrics
    app.state.queue = queue

    app.include_router(router)

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
