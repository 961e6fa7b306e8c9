"""HTTP API layer for secretwatch.

Exposes:
    create_app -- FastAPI application factory (health probes and metrics).
    build_app  -- Alias for create_app (used by secretwatch.app bootstrap).
"""

from secretwatch.api.app import create_app

build_app = create_app

__all__ = ["build_app", "create_app"]
