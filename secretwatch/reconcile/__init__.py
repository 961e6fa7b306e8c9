"""Reconciliation correlation engine.

Submodules:
    fingerprint -- SHA-256 digests of secret values.
    changes     -- Key-level change detection and baseline sources.
    correlator  -- Secret -> consuming workload filter.
    readiness   -- Three-state pod readiness classification.
    driver      -- ReconciliationDriver: one pass per secret identity.
"""

from secretwatch.reconcile.changes import (
    BaselineSource,
    FingerprintCache,
    RereadBaseline,
    detect_changes,
    diff_fingerprints,
)
from secretwatch.reconcile.correlator import find_consumers, secret_names_from_pod_spec
from secretwatch.reconcile.driver import (
    ReconcileError,
    ReconcileReport,
    ReconciliationDriver,
    WorkloadReadiness,
)
from secretwatch.reconcile.fingerprint import fingerprint, fingerprint_data
from secretwatch.reconcile.readiness import classify, classify_pod, summarize

__all__ = [
    "BaselineSource",
    "FingerprintCache",
    "ReconcileError",
    "ReconcileReport",
    "ReconciliationDriver",
    "RereadBaseline",
    "WorkloadReadiness",
    "classify",
    "classify_pod",
    "detect_changes",
    "diff_fingerprints",
    "find_consumers",
    "fingerprint",
    "fingerprint_data",
    "secret_names_from_pod_spec",
    "summarize",
]
