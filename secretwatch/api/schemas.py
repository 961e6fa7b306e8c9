"""Pydantic response models for the operator HTTP API."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error envelope returned by every non-2xx response."""

    error: str
    detail: str


class HealthResponse(BaseModel):
    """Body of ``/healthz`` and ``/readyz``."""

    status: str
    version: str
    queue_depth: int = 0
