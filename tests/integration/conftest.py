"""Shared fixtures for secretwatch integration tests.

Provides an in-memory ClusterReader and a metrics sink on a private
registry so full reconciliation passes run without a Kubernetes cluster.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

import pytest

from secretwatch.cluster.errors import ClusterReadError, SecretNotFoundError
from secretwatch.models.resources import (
    PodObservation,
    PodPhase,
    SecretIdentity,
    SecretSnapshot,
    WorkloadDescriptor,
)
from secretwatch.observability.metrics import PrometheusMetrics

# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


def make_secret(namespace: str = "ns1", name: str = "db-creds", **data: bytes) -> SecretSnapshot:
    return SecretSnapshot(identity=SecretIdentity(namespace, name), data=data or {"password": b"abc"})


def make_workload(
    name: str = "web",
    namespace: str = "ns1",
    secrets: tuple[str, ...] = ("db-creds",),
    selector: dict[str, str] | None = None,
    kind: str = "Deployment",
) -> WorkloadDescriptor:
    return WorkloadDescriptor(
        namespace=namespace,
        name=name,
        kind=kind,
        secret_names=frozenset(secrets),
        selector={"app": name} if selector is None else selector,
    )


def make_pod(name: str, phase: PodPhase = PodPhase.RUNNING, *ready: bool) -> PodObservation:
    return PodObservation(name=name, phase=phase, container_ready=tuple(ready) if ready else (True,))


# ---------------------------------------------------------------------------
# Fake cluster reader
# ---------------------------------------------------------------------------


class FakeClusterReader:
    """In-memory ClusterReader.

    ``secret_reads`` holds successive values returned by ``get_secret`` for
    an identity; the last value repeats once the list is exhausted, and
    None means NotFound.  ``fail`` maps an operation name to the exception
    raised by it.
    """

    def __init__(self) -> None:
        self.secret_reads: dict[SecretIdentity, list[SecretSnapshot | None]] = {}
        self.workloads: dict[str, list[WorkloadDescriptor]] = {}
        self.pods: dict[tuple[str, str], list[PodObservation]] = {}
        self.fail: dict[str, Exception] = {}
        self.calls: list[tuple[str, ...]] = []
        self.block: asyncio.Event | None = None

    def set_secret(self, *snapshots: SecretSnapshot | None, identity: SecretIdentity | None = None) -> None:
        key = identity or next(s.identity for s in snapshots if s is not None)
        self.secret_reads[key] = list(snapshots)

    def add_workload(self, workload: WorkloadDescriptor, pods: list[PodObservation] | None = None) -> None:
        self.workloads.setdefault(workload.namespace, []).append(workload)
        self.pods[(workload.namespace, _selector_key(workload.selector))] = pods or []

    def _maybe_fail(self, operation: str) -> None:
        exc = self.fail.get(operation)
        if exc is not None:
            raise ClusterReadError(operation, exc)

    async def get_secret(self, namespace: str, name: str) -> SecretSnapshot:
        self.calls.append(("get_secret", namespace, name))
        if self.block is not None:
            await self.block.wait()
        self._maybe_fail("get_secret")
        identity = SecretIdentity(namespace, name)
        reads = self.secret_reads.get(identity)
        if not reads:
            raise SecretNotFoundError(namespace, name)
        snapshot = reads.pop(0) if len(reads) > 1 else reads[0]
        if snapshot is None:
            raise SecretNotFoundError(namespace, name)
        return snapshot

    async def list_workloads(self, namespace: str) -> list[WorkloadDescriptor]:
        self.calls.append(("list_workloads", namespace))
        self._maybe_fail("list_workloads")
        return list(self.workloads.get(namespace, []))

    async def list_pods(self, namespace: str, selector: Mapping[str, str]) -> list[PodObservation]:
        key = _selector_key(selector)
        self.calls.append(("list_pods", namespace, key))
        self._maybe_fail(f"list_pods:{key}")
        self._maybe_fail("list_pods")
        return list(self.pods.get((namespace, key), []))

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)


def _selector_key(selector: Mapping[str, str]) -> str:
    return ",".join(f"{k}={v}" for k, v in sorted(selector.items()))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def reader() -> FakeClusterReader:
    return FakeClusterReader()


@pytest.fixture
def metrics() -> PrometheusMetrics:
    return PrometheusMetrics()
