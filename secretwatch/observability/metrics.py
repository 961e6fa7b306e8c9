"""Prometheus metrics for secretwatch.

Metrics live on an explicit ``CollectorRegistry`` owned by a
``PrometheusMetrics`` instance.  The instance is created once at startup and
handed to every component that records to it; nothing here is a module-level
global.

Exported series:
    reconciles_total{result}          -- one increment per reconciliation pass.
    reconcile_duration_seconds         -- wall time of completed passes.
    password_access_total{status}      -- demo password service reads.
"""

from __future__ import annotations

from typing import Protocol

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest

from secretwatch.models.resources import ReconcileOutcome

_DURATION_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)


class MetricsSink(Protocol):
    """Recording interface injected into the reconciliation driver."""

    def record_reconcile(self, outcome: ReconcileOutcome, duration_seconds: float) -> None: ...

    def record_password_access(self, ok: bool) -> None: ...


class PrometheusMetrics:
    """MetricsSink backed by prometheus_client.

    Counter increments are thread safe, so a single instance may be shared
    by every worker of the reconcile queue.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.reconciles_total = Counter(
            "reconciles_total",
            "Total number of reconciles by the controller",
            ["result"],
            registry=self.registry,
        )
        self.reconcile_duration_seconds = Histogram(
            "reconcile_duration_seconds",
            "Wall time of a reconciliation pass",
            buckets=_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.password_access_total = Counter(
            "password_access_total",
            "Total number of times the secret password is accessed",
            ["status"],
            registry=self.registry,
        )
        # Pre-create label children so both series are exported from the start
        for outcome in ReconcileOutcome:
            self.reconciles_total.labels(result=outcome.value)
        for status in ("success", "error"):
            self.password_access_total.labels(status=status)

    def record_reconcile(self, outcome: ReconcileOutcome, duration_seconds: float) -> None:
        self.reconciles_total.labels(result=outcome.value).inc()
        self.reconcile_duration_seconds.observe(max(duration_seconds, 0.0))

    def record_password_access(self, ok: bool) -> None:
        self.password_access_total.labels(status="success" if ok else "error").inc()

    def reconcile_count(self, outcome: ReconcileOutcome) -> float:
        """Current value of ``reconciles_total`` for *outcome*."""
        value = self.registry.get_sample_value("reconciles_total", {"result": outcome.value})
        return value or 0.0

    def render(self) -> tuple[bytes, str]:
        """Return the text exposition payload and its content type."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
