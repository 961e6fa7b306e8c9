"""Secret watcher: turns Kubernetes watch events into queued reconciles.

The watcher lists Secrets once, enqueues every identity, then follows a
watch stream from the list's resourceVersion.  ADDED, MODIFIED and DELETED
events all enqueue the affected identity; the driver works out what
happened.  Watch errors reconnect with exponential back-off; an expired
resourceVersion (HTTP 410) triggers a fresh list.  Secrets seen before a
relist but missing from it are enqueued too, so their cached fingerprints are
evicted.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from kubernetes_asyncio import watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from secretwatch.cluster.convert import identity_from_raw
from secretwatch.collector.queue import ReconcileQueue
from secretwatch.models.resources import SecretIdentity

_log = structlog.get_logger(component="collector.watcher")

_WATCH_TIMEOUT_SECONDS = 300
_INITIAL_BACKOFF = 1.0
_MAX_BACKOFF = 60.0
_HANDLED_EVENTS = frozenset({"ADDED", "MODIFIED", "DELETED"})


class _ResourceVersionExpired(Exception):
    """The watch resourceVersion is too old; a relist is required."""


class SecretWatcher:
    """Watches Secrets in one namespace (or all) and feeds a ReconcileQueue.

    Args:
        core_v1:   kubernetes_asyncio CoreV1Api.
        queue:     Destination for secret identities.
        namespace: Namespace to watch; empty string watches all namespaces.
    """

    def __init__(self, core_v1: Any, queue: ReconcileQueue, namespace: str = "") -> None:
        self._core_v1 = core_v1
        self._queue = queue
        self._namespace = namespace
        self._task: asyncio.Task[None] | None = None
        self._synced = asyncio.Event()
        self._known: set[SecretIdentity] = set()

    @property
    def synced(self) -> bool:
        """True once the initial list has been enqueued."""
        return self._synced.is_set()

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run(), name="secret-watcher")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    def _list_fn(self) -> Any:
        if self._namespace:
            return self._core_v1.list_namespaced_secret
        return self._core_v1.list_secret_for_all_namespaces

    def _list_kwargs(self) -> dict[str, Any]:
        return {"namespace": self._namespace} if self._namespace else {}

    async def run(self) -> None:
        """List-then-watch loop.  Runs until cancelled."""
        backoff = _INITIAL_BACKOFF
        resource_version: str | None = None
        while True:
            try:
                if resource_version is None:
                    resource_version = await self._relist()
                resource_version = await self._watch(resource_version)
                backoff = _INITIAL_BACKOFF
            except _ResourceVersionExpired:
                _log.info("watch resource version expired, relisting")
                resource_version = None
            except Exception as exc:
                _log.warning("secret watch failed", error=str(exc), retry_in=backoff)
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, _MAX_BACKOFF)
                resource_version = None

    async def _relist(self) -> str:
        result = await self._list_fn()(**self._list_kwargs())
        listed: set[SecretIdentity] = set()
        for item in result.items:
            metadata = item.metadata
            identity = SecretIdentity(namespace=metadata.namespace, name=metadata.name)
            listed.add(identity)
            self._queue.enqueue(identity)
        # Deleted while the watch was down; a pass sees NotFound and evicts them.
        vanished = sorted(self._known - listed)
        for identity in vanished:
            self._queue.enqueue(identity)
        self._known = listed
        self._synced.set()
        _log.info(
            "secrets listed",
            count=len(result.items),
            vanished=len(vanished),
            namespace=self._namespace or "*",
        )
        return str(result.metadata.resource_version or "")

    async def _watch(self, resource_version: str) -> str:
        """Follow one watch stream; return the last seen resourceVersion."""
        w = watch.Watch()
        kwargs = self._list_kwargs()
        kwargs["timeout_seconds"] = _WATCH_TIMEOUT_SECONDS
        if resource_version:
            kwargs["resource_version"] = resource_version
        try:
            async with w.stream(self._list_fn(), **kwargs) as stream:
                async for event in stream:
                    resource_version = self._handle_event(event, resource_version)
        except ApiException as exc:
            if exc.status == 410:
                raise _ResourceVersionExpired() from exc
            raise
        return resource_version

    def _handle_event(self, event: dict[str, Any], resource_version: str) -> str:
        event_type = event.get("type", "")
        raw = event.get("raw_object") or {}
        if event_type == "ERROR":
            if raw.get("code") == 410:
                raise _ResourceVersionExpired()
            _log.warning("watch error event", message=raw.get("message", ""))
            return resource_version
        if event_type not in _HANDLED_EVENTS:
            return resource_version

        identity = identity_from_raw(raw)
        if identity.name:
            _log.debug("secret event", event_type=event_type, secret=str(identity))
            if event_type == "DELETED":
                self._known.discard(identity)
            else:
                self._known.add(identity)
            self._queue.enqueue(identity)
        return str((raw.get("metadata") or {}).get("resourceVersion") or resource_version)
