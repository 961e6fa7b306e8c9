"""Secret change detection and baseline sources.

``detect_changes`` compares two snapshots of the same secret key by key.
Keys that exist only in the baseline (removed keys) are not reported.

The driver gets its baseline from a ``BaselineSource``:

RereadBaseline   -- a second live read of the secret.  Two reads issued back
                    to back almost always agree, so this mode rarely observes
                    a real rotation.
FingerprintCache -- fingerprints remembered from the last successful pass for
                    each identity.  In-process only; a restart starts empty.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

import structlog

from secretwatch.cluster.errors import ClusterReadError, SecretNotFoundError
from secretwatch.cluster.reader import ClusterReader
from secretwatch.models.resources import SecretIdentity, SecretSnapshot
from secretwatch.reconcile.fingerprint import fingerprint_data

_log = structlog.get_logger(component="reconcile.changes")


def diff_fingerprints(
    baseline: Mapping[str, str] | None,
    current: Mapping[str, str],
) -> set[str]:
    """Return the keys of *current* that are new or whose fingerprint differs."""
    if baseline is None:
        return set(current)
    return {key for key, digest in current.items() if baseline.get(key) != digest}


def detect_changes(baseline: SecretSnapshot | None, current: SecretSnapshot) -> set[str]:
    """Return the keys of *current* whose content differs from *baseline*.

    Every key is reported when *baseline* is None.
    """
    baseline_prints = fingerprint_data(baseline.data) if baseline is not None else None
    return diff_fingerprints(baseline_prints, fingerprint_data(current.data))


class BaselineSource(Protocol):
    """Where the driver obtains the fingerprints to compare against."""

    async def load(self, identity: SecretIdentity) -> Mapping[str, str] | None:
        """Return key fingerprints for *identity*, or None if none is known."""
        ...

    def commit(self, snapshot: SecretSnapshot) -> None:
        """Called after a pass over *snapshot* completed successfully."""
        ...

    def forget(self, identity: SecretIdentity) -> None:
        """Called when *identity* no longer exists."""
        ...


class RereadBaseline:
    """Baseline taken from a second read of the secret.

    The read is best effort: any error yields no baseline and the pass
    carries on without change detection.
    """

    def __init__(self, reader: ClusterReader) -> None:
        self._reader = reader

    async def load(self, identity: SecretIdentity) -> Mapping[str, str] | None:
        try:
            snapshot = await self._reader.get_secret(identity.namespace, identity.name)
        except (SecretNotFoundError, ClusterReadError) as exc:
            _log.debug("baseline read failed", secret=str(identity), error=str(exc))
            return None
        return fingerprint_data(snapshot.data)

    def commit(self, snapshot: SecretSnapshot) -> None:
        return None

    def forget(self, identity: SecretIdentity) -> None:
        return None


class FingerprintCache:
    """Per-identity fingerprints from the last successful pass.

    The reconcile queue never runs two passes for the same identity at once,
    so load/commit pairs for one identity never interleave.
    """

    def __init__(self) -> None:
        self._prints: dict[SecretIdentity, dict[str, str]] = {}

    async def load(self, identity: SecretIdentity) -> Mapping[str, str] | None:
        prints = self._prints.get(identity)
        return dict(prints) if prints is not None else None

    def commit(self, snapshot: SecretSnapshot) -> None:
        self._prints[snapshot.identity] = fingerprint_data(snapshot.data)

    def forget(self, identity: SecretIdentity) -> None:
        self._prints.pop(identity, None)

    def __contains__(self, identity: object) -> bool:
        return identity in self._prints

    def __len__(self) -> int:
        return len(self._prints)
