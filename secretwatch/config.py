"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from secretwatch.models.config import (
    APIConfig,
    DemoConfig,
    LogConfig,
    QueueConfig,
    ReconcileConfig,
    SecretWatchConfig,
    WatchConfig,
)

_WORKLOAD_KINDS = ("Deployment", "StatefulSet", "DaemonSet")
_CHANGE_DETECTION_MODES = ("cache", "reread")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"SECRETWATCH_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_change_detection(value: str) -> str:
    if value.lower() not in _CHANGE_DETECTION_MODES:
        raise ValueError(f"Invalid change detection mode: {value}. Must be one of {_CHANGE_DETECTION_MODES}")
    return value.lower()


def _parse_workload_kinds(value: str) -> tuple[str, ...]:
    """Parse a comma-separated kind list, matching names case-insensitively."""
    canonical = {kind.lower(): kind for kind in _WORKLOAD_KINDS}
    kinds: list[str] = []
    for raw in value.split(","):
        raw = raw.strip()
        if not raw:
            continue
        kind = canonical.get(raw.lower())
        if kind is None:
            raise ValueError(f"Unsupported workload kind: {raw}. Must be one of {_WORKLOAD_KINDS}")
        if kind not in kinds:
            kinds.append(kind)
    if not kinds:
        raise ValueError("At least one workload kind is required")
    return tuple(kinds)


def load_config() -> SecretWatchConfig:
    """Load configuration from SECRETWATCH_* environment variables."""
    base_delay = _env_float("REQUEUE_BASE_DELAY", 1.0, min_val=0.01)
    return SecretWatchConfig(
        watch=WatchConfig(
            namespace=_env("WATCH_NAMESPACE", ""),
        ),
        reconcile=ReconcileConfig(
            workload_kinds=_parse_workload_kinds(_env("WORKLOAD_KINDS", "Deployment")),
            change_detection=_validate_change_detection(_env("CHANGE_DETECTION", "cache")),
            timeout_seconds=_env_float("RECONCILE_TIMEOUT", 30.0, min_val=1.0),
        ),
        queue=QueueConfig(
            workers=_env_int("WORKERS", 4, min_val=1, max_val=32),
            base_delay=base_delay,
            max_delay=_env_float("REQUEUE_MAX_DELAY", 300.0, min_val=base_delay),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        demo=DemoConfig(
            secret_path=_env("DEMO_SECRET_PATH", "/etc/secret-volume/password"),
            port=_env_int("DEMO_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
