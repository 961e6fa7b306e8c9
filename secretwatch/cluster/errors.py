"""Errors raised by cluster readers."""

from __future__ import annotations


class SecretNotFoundError(Exception):
    """The requested Secret does not exist (deleted or never created)."""

    def __init__(self, namespace: str, name: str) -> None:
        super().__init__(f"Secret {namespace}/{name} not found")
        self.namespace = namespace
        self.name = name


class ClusterReadError(Exception):
    """A read against the cluster API failed for any reason but NotFound."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"Cluster read '{operation}' failed: {cause}")
        self.operation = operation
        self.cause = cause
