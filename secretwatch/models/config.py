"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class WatchConfig:
    """Secret watch scope."""

    namespace: str = ""  # empty: all namespaces


@dataclass
class ReconcileConfig:
    """Reconciliation driver configuration."""

    workload_kinds: tuple[str, ...] = ("Deployment",)
    change_detection: str = "cache"  # "cache" or "reread"
    timeout_seconds: float = 30.0


@dataclass
class QueueConfig:
    """Work queue configuration."""

    workers: int = 4
    base_delay: float = 1.0
    max_delay: float = 300.0


@dataclass
class APIConfig:
    """Health and metrics HTTP server configuration."""

    port: int = 8080


@dataclass
class DemoConfig:
    """Demo password service configuration."""

    secret_path: str = "/etc/secret-volume/password"
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class SecretWatchConfig:
    """Top-level secretwatch configuration."""

    watch: WatchConfig = field(default_factory=WatchConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    api: APIConfig = field(default_factory=APIConfig)
    demo: DemoConfig = field(default_factory=DemoConfig)
    log: LogConfig = field(default_factory=LogConfig)
