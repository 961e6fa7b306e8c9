"""Read interface to cluster state consumed by the reconciliation driver."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from secretwatch.models.resources import PodObservation, SecretSnapshot, WorkloadDescriptor


class ClusterReader(Protocol):
    """Namespace-scoped, read-only access to cluster objects.

    Implementations raise SecretNotFoundError when a secret is missing and
    ClusterReadError for every other failure.
    """

    async def get_secret(self, namespace: str, name: str) -> SecretSnapshot: ...

    async def list_workloads(self, namespace: str) -> list[WorkloadDescriptor]: ...

    async def list_pods(self, namespace: str, selector: Mapping[str, str]) -> list[PodObservation]: ...
