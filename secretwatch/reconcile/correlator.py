"""Secret-to-workload correlation.

A workload consumes a secret when its pod template mounts the secret as a
volume, either directly (``volumes[].secret.secretName``) or through a
projected volume (``volumes[].projected.sources[].secret.name``).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from secretwatch.models.resources import SecretIdentity, WorkloadDescriptor


def secret_names_from_pod_spec(pod_spec: dict[str, Any] | None) -> frozenset[str]:
    """Collect the secret names referenced by the volumes of *pod_spec*."""
    names: set[str] = set()
    for volume in (pod_spec or {}).get("volumes") or []:
        secret = volume.get("secret") or {}
        if secret.get("secretName"):
            names.add(secret["secretName"])
        projected = volume.get("projected") or {}
        for source in projected.get("sources") or []:
            projected_secret = source.get("secret") or {}
            if projected_secret.get("name"):
                names.add(projected_secret["name"])
    return frozenset(names)


def find_consumers(
    identity: SecretIdentity,
    workloads: Iterable[WorkloadDescriptor],
) -> list[WorkloadDescriptor]:
    """Return the workloads in the secret's namespace that mount it.

    Input order is preserved.  Workloads from other namespaces are ignored
    even if a caller passes them in.
    """
    return [
        workload
        for workload in workloads
        if workload.namespace == identity.namespace and workload.references(identity.name)
    ]
