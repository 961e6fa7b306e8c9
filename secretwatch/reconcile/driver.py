"""Reconciliation driver.

One pass per triggered secret identity:

    fetch secret -> load baseline -> detect changed keys
        -> list workloads -> correlate consumers
        -> list pods per consumer -> classify readiness
        -> record outcome -> emit observations

The pass keeps no state of its own between calls.  Observation log events
are buffered in a ReconcileReport and emitted only once the pass has
completed, so an aborted pass never reports a change it did not finish
correlating.

Failure handling:
    * SecretNotFoundError on the triggering secret is a deletion: the pass
      succeeds with no further work.
    * Any other read error records ``failure`` and raises ReconcileError.
      The first pod-list failure aborts the remaining consumers.
    * Exceeding the pass timeout records ``failure`` and raises
      ReconcileError(stage="timeout").
    * Cancellation records nothing and propagates CancelledError.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field

import structlog

from secretwatch.cluster.errors import ClusterReadError, SecretNotFoundError
from secretwatch.cluster.reader import ClusterReader
from secretwatch.models.resources import (
    PodObservation,
    ReadinessVerdict,
    ReconcileOutcome,
    SecretIdentity,
    WorkloadDescriptor,
)
from secretwatch.observability.metrics import MetricsSink
from secretwatch.reconcile.changes import BaselineSource, diff_fingerprints
from secretwatch.reconcile.correlator import find_consumers
from secretwatch.reconcile.fingerprint import fingerprint_data
from secretwatch.reconcile.readiness import classify, summarize

_logger = structlog.get_logger(component="reconcile.driver")


class ReconcileError(Exception):
    """Raised when a pass aborts.  The outcome has already been recorded."""

    def __init__(self, identity: SecretIdentity, stage: str, cause: Exception) -> None:
        super().__init__(f"Reconcile of {identity} failed at '{stage}': {cause}")
        self.identity = identity
        self.stage = stage
        self.cause = cause


@dataclass(frozen=True)
class WorkloadReadiness:
    """A consuming workload and the classified state of its pods."""

    workload: WorkloadDescriptor
    pods: tuple[tuple[PodObservation, ReadinessVerdict], ...] = ()

    @property
    def counts(self) -> dict[ReadinessVerdict, int]:
        return summarize(self.pods)

    @property
    def ready(self) -> bool:
        """True when every pod is READY (vacuously true with no pods)."""
        return all(verdict is ReadinessVerdict.READY for _pod, verdict in self.pods)


@dataclass(frozen=True)
class ReconcileReport:
    """Everything a completed pass observed."""

    identity: SecretIdentity
    outcome: ReconcileOutcome
    deleted: bool = False
    baseline_known: bool = False
    changed_keys: tuple[str, ...] = ()
    consumers: tuple[WorkloadReadiness, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, object]:
        """Plain-dict form for JSON output.  Contains no secret values."""
        return {
            "secret": str(self.identity),
            "outcome": self.outcome.value,
            "deleted": self.deleted,
            "baseline_known": self.baseline_known,
            "changed_keys": list(self.changed_keys),
            "consumers": [
                {
                    "kind": c.workload.kind,
                    "name": c.workload.name,
                    "ready": c.ready,
                    "pods": [{"name": pod.name, "phase": pod.phase.value, "verdict": v.value} for pod, v in c.pods],
                }
                for c in self.consumers
            ],
        }


class ReconciliationDriver:
    """Runs reconciliation passes against an injected reader and metrics sink.

    Args:
        reader:   ClusterReader used for every collaborator read.
        metrics:  MetricsSink receiving one outcome per finished pass.
        baseline: BaselineSource supplying the fingerprints to diff against.
        timeout:  Optional per-pass deadline in seconds.
    """

    def __init__(
        self,
        reader: ClusterReader,
        metrics: MetricsSink,
        baseline: BaselineSource,
        timeout: float | None = None,
    ) -> None:
        self._reader = reader
        self._metrics = metrics
        self._baseline = baseline
        self._timeout = timeout

    async def reconcile(self, identity: SecretIdentity) -> ReconcileReport:
        """Run one pass for *identity*.

        Raises:
            ReconcileError: on any read failure other than secret NotFound,
                or when the pass exceeds its timeout.
        """
        log = _logger.bind(secret=identity.name, namespace=identity.namespace)
        t_start = time.monotonic()
        try:
            async with asyncio.timeout(self._timeout):
                report = await self._run_pass(identity)
        except TimeoutError as exc:
            self._record(ReconcileOutcome.FAILURE, t_start)
            log.error("reconcile timed out", timeout=self._timeout)
            raise ReconcileError(identity, "timeout", exc) from exc
        except ReconcileError as exc:
            self._record(ReconcileOutcome.FAILURE, t_start)
            log.error("reconcile failed", stage=exc.stage, error=str(exc.cause))
            raise

        self._record(ReconcileOutcome.SUCCESS, t_start)
        _emit_observations(log, report)
        return report

    def _record(self, outcome: ReconcileOutcome, t_start: float) -> None:
        self._metrics.record_reconcile(outcome, time.monotonic() - t_start)

    async def _run_pass(self, identity: SecretIdentity) -> ReconcileReport:
        try:
            current = await self._reader.get_secret(identity.namespace, identity.name)
        except SecretNotFoundError:
            self._baseline.forget(identity)
            return ReconcileReport(identity=identity, outcome=ReconcileOutcome.SUCCESS, deleted=True)
        except ClusterReadError as exc:
            raise ReconcileError(identity, "get_secret", exc) from exc

        baseline = await self._baseline.load(identity)
        changed: set[str] = set()
        if baseline is not None:
            changed = diff_fingerprints(baseline, fingerprint_data(current.data))

        try:
            workloads = await self._reader.list_workloads(identity.namespace)
        except ClusterReadError as exc:
            raise ReconcileError(identity, "list_workloads", exc) from exc

        consumers: list[WorkloadReadiness] = []
        for workload in find_consumers(identity, workloads):
            pods: list[PodObservation] = []
            # An empty selector would match every pod in the namespace
            if workload.selector:
                try:
                    pods = await self._reader.list_pods(identity.namespace, workload.selector)
                except ClusterReadError as exc:
                    raise ReconcileError(identity, "list_pods", exc) from exc
            consumers.append(WorkloadReadiness(workload=workload, pods=tuple(classify(pods))))

        self._baseline.commit(current)
        return ReconcileReport(
            identity=identity,
            outcome=ReconcileOutcome.SUCCESS,
            baseline_known=baseline is not None,
            changed_keys=tuple(sorted(changed)),
            consumers=tuple(consumers),
        )


def _emit_observations(log: structlog.stdlib.BoundLogger, report: ReconcileReport) -> None:
    """Log the observations of a completed pass, in a stable order."""
    if report.deleted:
        log.info("secret deleted, nothing to correlate")
        return

    log.info("secret detected")
    if not report.baseline_known:
        log.info("secret baseline unavailable")
    for key in report.changed_keys:
        log.info("secret value changed", key=key)

    for consumer in report.consumers:
        workload = consumer.workload
        log.info("workload uses updated secret", kind=workload.kind, workload=workload.name)
        log.info("pods found for workload", kind=workload.kind, workload=workload.name, pods=len(consumer.pods))
        for pod, verdict in consumer.pods:
            log.info(
                "pod readiness",
                pod=pod.name,
                workload=workload.name,
                phase=pod.phase.value,
                verdict=verdict.value,
            )

    log.info("reconcile complete", changed_keys=len(report.changed_keys), consumers=len(report.consumers))
