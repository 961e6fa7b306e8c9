"""ClusterReader backed by kubernetes-asyncio.

API objects are converted to their JSON form with
``ApiClient.sanitize_for_serialization`` and then mapped through the pure
converters in ``secretwatch.cluster.convert``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from secretwatch.cluster.convert import format_label_selector, pod_from_raw, secret_from_raw, workload_from_raw
from secretwatch.cluster.errors import ClusterReadError, SecretNotFoundError
from secretwatch.models.resources import PodObservation, SecretSnapshot, WorkloadDescriptor

_log = structlog.get_logger(component="cluster.kubernetes")

# kind -> name of the namespaced list method on AppsV1Api
_WORKLOAD_LIST_METHODS: dict[str, str] = {
    "Deployment": "list_namespaced_deployment",
    "StatefulSet": "list_namespaced_stateful_set",
    "DaemonSet": "list_namespaced_daemon_set",
}


class KubernetesClusterReader:
    """Reads Secrets, workloads and Pods through the Kubernetes API.

    Args:
        api_client:     Shared kubernetes_asyncio ApiClient.
        workload_kinds: Workload kinds scanned by ``list_workloads``.
    """

    def __init__(
        self,
        api_client: k8s_client.ApiClient,
        workload_kinds: tuple[str, ...] = ("Deployment",),
    ) -> None:
        unknown = [kind for kind in workload_kinds if kind not in _WORKLOAD_LIST_METHODS]
        if unknown:
            raise ValueError(f"Unsupported workload kinds: {unknown}")
        self._api_client = api_client
        self._core_v1 = k8s_client.CoreV1Api(api_client)
        self._apps_v1 = k8s_client.AppsV1Api(api_client)
        self._workload_kinds = workload_kinds

    def _to_raw(self, obj: Any) -> dict[str, Any]:
        return self._api_client.sanitize_for_serialization(obj)  # type: ignore[no-any-return]

    async def get_secret(self, namespace: str, name: str) -> SecretSnapshot:
        try:
            secret = await self._core_v1.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as exc:
            if exc.status == 404:
                raise SecretNotFoundError(namespace, name) from exc
            raise ClusterReadError("get_secret", exc) from exc
        except Exception as exc:
            raise ClusterReadError("get_secret", exc) from exc
        try:
            return secret_from_raw(self._to_raw(secret))
        except ValueError as exc:
            raise ClusterReadError("get_secret", exc) from exc

    async def list_workloads(self, namespace: str) -> list[WorkloadDescriptor]:
        workloads: list[WorkloadDescriptor] = []
        for kind in self._workload_kinds:
            list_fn = getattr(self._apps_v1, _WORKLOAD_LIST_METHODS[kind])
            try:
                result = await list_fn(namespace=namespace)
            except Exception as exc:
                raise ClusterReadError(f"list_workloads:{kind}", exc) from exc
            workloads.extend(workload_from_raw(self._to_raw(item), kind) for item in result.items)
        _log.debug("workloads listed", namespace=namespace, count=len(workloads))
        return workloads

    async def list_pods(self, namespace: str, selector: Mapping[str, str]) -> list[PodObservation]:
        label_selector = format_label_selector(selector)
        try:
            result = await self._core_v1.list_namespaced_pod(namespace=namespace, label_selector=label_selector)
        except Exception as exc:
            raise ClusterReadError("list_pods", exc) from exc
        pods = [pod_from_raw(self._to_raw(item)) for item in result.items]
        return sorted(pods, key=lambda pod: pod.name)
