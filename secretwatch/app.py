"""Application bootstrap for the secretwatch operator.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → metrics → reader/baseline
              → driver → queue → watcher → REST

Shutdown is graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that
a single failure does not prevent the rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Any

from secretwatch.config import load_config
from secretwatch.models.config import SecretWatchConfig
from secretwatch.observability.logging import get_logger, setup_logging
from secretwatch.observability.metrics import PrometheusMetrics

if TYPE_CHECKING:
    import structlog

    from secretwatch.reconcile.changes import BaselineSource
    from secretwatch.reconcile.driver import ReconciliationDriver

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


async def create_api_client() -> Any:
    """Configure kubernetes-asyncio from in-cluster config or kubeconfig."""
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
    from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

    log = get_logger("app")
    try:
        # load_incluster_config() is synchronous in kubernetes-asyncio
        k8s_config.load_incluster_config()
        log.info("k8s client configured from in-cluster service account")
    except k8s_config.ConfigException:
        await k8s_config.load_kube_config()
        log.info("k8s client configured from kubeconfig")
    return k8s_client.ApiClient()


def build_baseline(mode: str, reader: Any) -> BaselineSource:
    """Return the BaselineSource for a ``change_detection`` mode."""
    from secretwatch.reconcile.changes import FingerprintCache, RereadBaseline

    if mode == "reread":
        return RereadBaseline(reader)
    return FingerprintCache()


def build_driver(config: SecretWatchConfig, api_client: Any, metrics: PrometheusMetrics) -> ReconciliationDriver:
    """Build a ReconciliationDriver reading through *api_client*."""
    from secretwatch.cluster.kubernetes import KubernetesClusterReader
    from secretwatch.reconcile.driver import ReconciliationDriver

    reader = KubernetesClusterReader(api_client, workload_kinds=config.reconcile.workload_kinds)
    return ReconciliationDriver(
        reader=reader,
        metrics=metrics,
        baseline=build_baseline(config.reconcile.change_detection, reader),
        timeout=config.reconcile.timeout_seconds,
    )


class SecretWatchApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    ``stop()`` is safe to call on an app that was never started or has
    already stopped.
    """

    def __init__(self, config: SecretWatchConfig | None = None) -> None:
        self.config = config
        self.metrics: PrometheusMetrics | None = None

        self._api_client: Any = None
        self._driver: ReconciliationDriver | None = None
        self._queue: Any = None
        self._watcher: Any = None
        self._rest_server: Any = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("secretwatch starting", version=_secretwatch_version())

        await self._start_k8s_client()
        self.metrics = PrometheusMetrics()
        await self._start_driver()
        await self._start_queue()
        await self._start_watcher()
        await self._start_rest()

        self._running = True
        self._log.info("secretwatch started", port=self.config.api.port)

    async def _start_k8s_client(self) -> None:
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            self._api_client = await create_api_client()
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _start_driver(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self.metrics is not None
        try:
            self._driver = build_driver(self.config, self._api_client, self.metrics)
            self._log.info(
                "reconciliation driver ready",
                workload_kinds=list(self.config.reconcile.workload_kinds),
                change_detection=self.config.reconcile.change_detection,
            )
        except Exception as exc:
            raise _ComponentError("driver", exc) from exc

    async def _start_queue(self) -> None:
        assert self.config is not None
        assert self._driver is not None
        try:
            from secretwatch.collector.queue import ReconcileQueue

            queue = ReconcileQueue(
                handler=self._driver.reconcile,
                workers=self.config.queue.workers,
                base_delay=self.config.queue.base_delay,
                max_delay=self.config.queue.max_delay,
            )
            await queue.start()
            self._queue = queue
        except Exception as exc:
            raise _ComponentError("queue", exc) from exc

    async def _start_watcher(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            from secretwatch.collector.watcher import SecretWatcher

            watcher = SecretWatcher(
                k8s_client.CoreV1Api(self._api_client),
                self._queue,
                namespace=self.config.watch.namespace,
            )
            await watcher.start()
            self._watcher = watcher
            self._log.info("secret watcher started", namespace=self.config.watch.namespace or "*")
        except Exception as exc:
            raise _ComponentError("watcher", exc) from exc

    async def _start_rest(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self.metrics is not None
        try:
            import uvicorn

            from secretwatch.api import build_app

            fastapi_app = build_app(metrics=self.metrics, queue=self._queue)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("secretwatch shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True
        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        await self._stop_component("watcher", self._watcher)
        await self._stop_component("queue", self._queue)
        await self._stop_component("k8s_client", _ApiClientCloser(self._api_client))
        self._watcher = self._queue = self._api_client = self._rest_server = None

        log.info("secretwatch stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))


class _ApiClientCloser:
    """Adapts ApiClient.close() to the stop() shape used during shutdown."""

    def __init__(self, api_client: Any) -> None:
        self._api_client = api_client

    async def stop(self) -> None:
        if self._api_client is not None:
            await self._api_client.close()


def _secretwatch_version() -> str:
    from secretwatch import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: SecretWatchConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = SecretWatchApp(config)
    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_requested.set)

    try:
        await app.start()
        await stop_requested.wait()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()
