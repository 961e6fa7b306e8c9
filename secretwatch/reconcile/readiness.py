"""Pod readiness classification."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from secretwatch.models.resources import PodObservation, PodPhase, ReadinessVerdict


def classify_pod(pod: PodObservation) -> ReadinessVerdict:
    """Running with every container ready is READY, Running otherwise is
    PARTIALLY_READY, any other phase is NOT_RUNNING."""
    if pod.phase is not PodPhase.RUNNING:
        return ReadinessVerdict.NOT_RUNNING
    if all(pod.container_ready):
        return ReadinessVerdict.READY
    return ReadinessVerdict.PARTIALLY_READY


def classify(pods: Iterable[PodObservation]) -> list[tuple[PodObservation, ReadinessVerdict]]:
    """Pair every pod with its verdict, in input order."""
    return [(pod, classify_pod(pod)) for pod in pods]


def summarize(classified: Iterable[tuple[PodObservation, ReadinessVerdict]]) -> dict[ReadinessVerdict, int]:
    """Count pods per verdict.  Every verdict is present, zero if unseen."""
    counts = Counter(verdict for _pod, verdict in classified)
    return {verdict: counts.get(verdict, 0) for verdict in ReadinessVerdict}
