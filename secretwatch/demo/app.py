"""Demo password service.

A workload that mounts a Secret and renders one of its keys, used to watch a
rotation propagate.  Every read increments ``password_access_total`` with
``status=success`` or ``status=error``.
"""

from __future__ import annotations

import html
from pathlib import Path

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse

from secretwatch.observability.metrics import PrometheusMetrics

_log = structlog.get_logger(component="demo")

_READ_FAILED = "Failed to read secret"


def read_password(path: Path, metrics: PrometheusMetrics) -> str | None:
    """Return the file contents, or None if the file cannot be read.

    Secret values are arbitrary bytes; undecodable sequences become U+FFFD.
    """
    try:
        value = path.read_bytes().decode("utf-8", errors="replace")
    except OSError as exc:
        metrics.record_password_access(ok=False)
        _log.warning("password read failed", path=str(path), error=exc.strerror or str(exc))
        return None
    metrics.record_password_access(ok=True)
    return value


def create_demo_app(secret_path: str, metrics: PrometheusMetrics) -> FastAPI:
    """Build the demo FastAPI app serving ``/`` and ``/metrics``."""
    app = FastAPI(title="secretwatch-demo", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.secret_path = Path(secret_path)
    app.state.metrics = metrics

    @app.get("/", response_class=HTMLResponse)
    async def show_password(request: Request) -> HTMLResponse:
        password = read_password(request.app.state.secret_path, request.app.state.metrics)
        body = html.escape(password) if password is not None else _READ_FAILED
        return HTMLResponse(f"<h1>Secret Password:</h1><h2>{body}</h2>")

    @app.get("/metrics")
    async def demo_metrics(request: Request) -> Response:
        payload, content_type = request.app.state.metrics.render()
        return Response(content=payload, media_type=content_type)

    return app
