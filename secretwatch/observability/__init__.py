"""Logging and metrics for secretwatch."""

from secretwatch.observability.logging import get_logger, setup_logging
from secretwatch.observability.metrics import MetricsSink, PrometheusMetrics

__all__ = ["MetricsSink", "PrometheusMetrics", "get_logger", "setup_logging"]
