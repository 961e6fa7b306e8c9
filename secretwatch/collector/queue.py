"""Reconcile work queue.

Producers (the Secret watcher, the CLI) enqueue secret identities; a pool of
asyncio workers dequeues them and invokes the reconcile handler.

Guarantees:
    * An identity waiting in the queue is held once, however often it is
      enqueued.
    * Two passes for the same identity never run concurrently.  Enqueueing
      an identity while it is being processed marks it dirty, and it is
      queued again when the running pass finishes.
    * A failed pass is requeued after an exponential backoff delay
      ``min(base_delay * 2**(failures - 1), max_delay)``.  A successful pass
      resets the failure count.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from secretwatch.models.resources import SecretIdentity

_log = structlog.get_logger(component="collector.queue")

ReconcileHandler = Callable[[SecretIdentity], Awaitable[Any]]


class ReconcileQueue:
    """Deduplicating, per-identity serialised work queue with requeue backoff.

    Args:
        handler:    Coroutine function run once per dequeued identity.
        workers:    Number of concurrent worker tasks.
        base_delay: First requeue delay in seconds after a failure.
        max_delay:  Upper bound on the requeue delay.
    """

    def __init__(
        self,
        handler: ReconcileHandler,
        workers: int = 4,
        base_delay: float = 1.0,
        max_delay: float = 300.0,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._handler = handler
        self._worker_count = workers
        self._base_delay = base_delay
        self._max_delay = max_delay

        self._queue: asyncio.Queue[SecretIdentity] = asyncio.Queue()
        self._queued: set[SecretIdentity] = set()
        self._processing: set[SecretIdentity] = set()
        self._dirty: set[SecretIdentity] = set()
        self._failures: dict[SecretIdentity, int] = {}
        self._delayed: dict[SecretIdentity, asyncio.TimerHandle] = {}
        self._workers: list[asyncio.Task[None]] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def __len__(self) -> int:
        return len(self._queued)

    def failures(self, identity: SecretIdentity) -> int:
        """Consecutive failed passes for *identity*."""
        return self._failures.get(identity, 0)

    def enqueue(self, identity: SecretIdentity) -> None:
        """Schedule a pass for *identity* as soon as a worker is free."""
        timer = self._delayed.pop(identity, None)
        if timer is not None:
            timer.cancel()
        if identity in self._processing:
            self._dirty.add(identity)
            return
        if identity in self._queued:
            return
        self._queued.add(identity)
        self._queue.put_nowait(identity)

    def backoff_delay(self, failures: int) -> float:
        return min(self._base_delay * 2 ** max(failures - 1, 0), self._max_delay)

    async def start(self) -> None:
        """Spawn the worker tasks.  Safe to call on a running queue."""
        if self._running:
            return
        self._running = True
        for i in range(self._worker_count):
            task = asyncio.create_task(self._worker(), name=f"reconcile-worker-{i}")
            self._workers.append(task)
        _log.info("reconcile queue started", workers=self._worker_count)

    async def stop(self) -> None:
        """Cancel workers and pending requeues.  Queued work is dropped."""
        if not self._running:
            return
        self._running = False
        for timer in self._delayed.values():
            timer.cancel()
        self._delayed.clear()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        _log.info("reconcile queue stopped", dropped=len(self._queued))

    async def join(self) -> None:
        """Wait until every queued item has been processed once."""
        await self._queue.join()

    async def _worker(self) -> None:
        while True:
            identity = await self._queue.get()
            self._queued.discard(identity)
            self._processing.add(identity)
            try:
                await self._process(identity)
            finally:
                self._processing.discard(identity)
                if identity in self._dirty:
                    self._dirty.discard(identity)
                    self.enqueue(identity)
                self._queue.task_done()

    async def _process(self, identity: SecretIdentity) -> None:
        try:
            await self._handler(identity)
        except Exception as exc:
            failures = self._failures.get(identity, 0) + 1
            self._failures[identity] = failures
            delay = self.backoff_delay(failures)
            _log.warning(
                "reconcile requeued",
                secret=str(identity),
                failures=failures,
                delay_seconds=delay,
                error=str(exc),
            )
            # A dirty identity is requeued immediately by the worker instead
            if identity not in self._dirty:
                self._schedule(identity, delay)
        else:
            self._failures.pop(identity, None)

    def _schedule(self, identity: SecretIdentity, delay: float) -> None:
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._delayed.pop(identity, None)
            if self._running:
                self.enqueue(identity)

        self._delayed[identity] = loop.call_later(delay, _fire)
