"""Core data structures for secretwatch."""

from secretwatch.models.config import SecretWatchConfig
from secretwatch.models.resources import (
    PodObservation,
    PodPhase,
    ReadinessVerdict,
    ReconcileOutcome,
    SecretIdentity,
    SecretSnapshot,
    WorkloadDescriptor,
)

__all__ = [
    "PodObservation",
    "PodPhase",
    "ReadinessVerdict",
    "ReconcileOutcome",
    "SecretIdentity",
    "SecretSnapshot",
    "SecretWatchConfig",
    "WorkloadDescriptor",
]
