"""Conversion of raw Kubernetes API dicts into secretwatch models.

The input is the camelCase JSON form of an object, as found in a watch
event's ``raw_object`` or returned by ``ApiClient.sanitize_for_serialization``.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from typing import Any

from secretwatch.models.resources import (
    PodObservation,
    PodPhase,
    SecretIdentity,
    SecretSnapshot,
    WorkloadDescriptor,
)
from secretwatch.reconcile.correlator import secret_names_from_pod_spec


def _metadata(raw: Mapping[str, Any]) -> dict[str, Any]:
    return raw.get("metadata") or {}


def identity_from_raw(raw: Mapping[str, Any]) -> SecretIdentity:
    metadata = _metadata(raw)
    return SecretIdentity(namespace=str(metadata.get("namespace", "")), name=str(metadata.get("name", "")))


def secret_from_raw(raw: Mapping[str, Any]) -> SecretSnapshot:
    """Build a SecretSnapshot, decoding the base64 ``data`` values.

    Raises:
        ValueError: if a value is not valid base64.
    """
    data: dict[str, bytes] = {}
    for key, encoded in (raw.get("data") or {}).items():
        try:
            data[key] = base64.b64decode(encoded or "", validate=True)
        except binascii.Error as exc:
            raise ValueError(f"Secret key {key!r} is not valid base64") from exc
    return SecretSnapshot(identity=identity_from_raw(raw), data=data)


def workload_from_raw(raw: Mapping[str, Any], kind: str) -> WorkloadDescriptor:
    """Build a WorkloadDescriptor from a Deployment/StatefulSet/DaemonSet.

    The pod selector is ``spec.selector.matchLabels``; when that is empty
    the pod template labels are used instead.
    """
    metadata = _metadata(raw)
    spec = raw.get("spec") or {}
    template = spec.get("template") or {}
    selector = (spec.get("selector") or {}).get("matchLabels") or {}
    if not selector:
        selector = (template.get("metadata") or {}).get("labels") or {}
    return WorkloadDescriptor(
        namespace=str(metadata.get("namespace", "")),
        name=str(metadata.get("name", "")),
        kind=kind,
        secret_names=secret_names_from_pod_spec(template.get("spec")),
        selector=dict(selector),
    )


def pod_from_raw(raw: Mapping[str, Any]) -> PodObservation:
    status = raw.get("status") or {}
    return PodObservation(
        name=str(_metadata(raw).get("name", "")),
        phase=PodPhase.parse(status.get("phase")),
        container_ready=tuple(bool(cs.get("ready")) for cs in status.get("containerStatuses") or []),
    )


def format_label_selector(selector: Mapping[str, str]) -> str:
    """Render an equality label selector, e.g. ``app=web,tier=frontend``."""
    return ",".join(f"{key}={value}" for key, value in sorted(selector.items()))
