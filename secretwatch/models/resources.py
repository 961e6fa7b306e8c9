"""Cluster resource data structures used by a reconciliation pass.

Every entity here is built fresh from collaborator reads at the start of a
pass and discarded at the end of it.  Nothing is persisted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum


class PodPhase(StrEnum):
    """Lifecycle phase reported in ``pod.status.phase``."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> PodPhase:
        """Map a raw phase string to a PodPhase, unknown strings to UNKNOWN."""
        try:
            return cls(value or "")
        except ValueError:
            return cls.UNKNOWN


class ReadinessVerdict(StrEnum):
    """Three-state readiness classification of a single pod."""

    READY = "Ready"
    PARTIALLY_READY = "PartiallyReady"
    NOT_RUNNING = "NotRunning"


class ReconcileOutcome(StrEnum):
    """Result of one reconciliation pass, used as the ``result`` metric label."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True, order=True)
class SecretIdentity:
    """Namespace/name pair identifying a Secret."""

    namespace: str
    name: str

    @classmethod
    def parse(cls, key: str) -> SecretIdentity:
        """Parse ``namespace/name``.

        Raises:
            ValueError: if *key* is not of the form ``namespace/name``.
        """
        namespace, sep, name = key.partition("/")
        if not sep or not namespace or not name or "/" in name:
            raise ValueError(f"Invalid secret key {key!r}, expected 'namespace/name'")
        return cls(namespace=namespace, name=name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class SecretSnapshot:
    """Point-in-time content of a Secret.

    ``data`` maps each key to its decoded byte value.  Values must never be
    logged; compare them through their fingerprints.
    """

    identity: SecretIdentity
    data: Mapping[str, bytes] = field(default_factory=dict, repr=False)

    @property
    def keys(self) -> list[str]:
        return sorted(self.data)


@dataclass(frozen=True)
class WorkloadDescriptor:
    """A pod-template-owning workload (Deployment, StatefulSet, DaemonSet)."""

    namespace: str
    name: str
    kind: str = "Deployment"
    secret_names: frozenset[str] = frozenset()
    selector: Mapping[str, str] = field(default_factory=dict)

    def references(self, secret_name: str) -> bool:
        return secret_name in self.secret_names


@dataclass(frozen=True)
class PodObservation:
    """Phase and per-container ready flags of one pod."""

    name: str
    phase: PodPhase
    container_ready: tuple[bool, ...] = ()
