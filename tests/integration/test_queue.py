"""Integration tests for the ReconcileQueue.

Tests cover: enqueue/process cycle, deduplication, per-identity
serialisation, dirty requeue, failure backoff and shutdown.
"""

from __future__ import annotations

import asyncio

import pytest

from secretwatch.collector.queue import ReconcileQueue
from secretwatch.models.resources import ReconcileOutcome, SecretIdentity
from secretwatch.observability.metrics import PrometheusMetrics
from secretwatch.reconcile.changes import FingerprintCache
from secretwatch.reconcile.driver import ReconciliationDriver

from .conftest import FakeClusterReader, make_secret

_A = SecretIdentity("default", "secret-a")
_B = SecretIdentity("default", "secret-b")


class _Recorder:
    """Handler that records calls and can be paused or made to fail."""

    def __init__(self, delay: float = 0.0, fail_times: int = 0) -> None:
        self.calls: list[SecretIdentity] = []
        self.active: set[SecretIdentity] = set()
        self.overlaps = 0
        self.delay = delay
        self.fail_times = fail_times

    async def __call__(self, identity: SecretIdentity) -> None:
        if identity in self.active:
            self.overlaps += 1
        self.active.add(identity)
        self.calls.append(identity)
        try:
            await asyncio.sleep(self.delay)
            if self.fail_times > 0:
                self.fail_times -= 1
                raise RuntimeError("transient")
        finally:
            self.active.discard(identity)


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


# ---------------------------------------------------------------------------
# Enqueue and process
# ---------------------------------------------------------------------------


class TestEnqueueAndProcess:
    async def test_enqueued_identity_is_processed(self) -> None:
        handler = _Recorder()
        queue = ReconcileQueue(handler, workers=2)
        await queue.start()
        try:
            queue.enqueue(_A)
            await asyncio.wait_for(queue.join(), timeout=2.0)
            assert handler.calls == [_A]
        finally:
            await queue.stop()

    async def test_invalid_worker_count_rejected(self) -> None:
        with pytest.raises(ValueError):
            ReconcileQueue(_Recorder(), workers=0)

    async def test_drives_reconciliation_driver(self) -> None:
        reader = FakeClusterReader()
        reader.set_secret(make_secret("default", "secret-a"))
        metrics = PrometheusMetrics()
        driver = ReconciliationDriver(reader, metrics, FingerprintCache())
        queue = ReconcileQueue(driver.reconcile, workers=1)
        await queue.start()
        try:
            queue.enqueue(_A)
            await asyncio.wait_for(queue.join(), timeout=2.0)
            assert metrics.reconcile_count(ReconcileOutcome.SUCCESS) == 1
        finally:
            await queue.stop()


# ---------------------------------------------------------------------------
# Deduplication and serialisation
# ---------------------------------------------------------------------------


class TestDeduplication:
    async def test_duplicate_enqueues_collapse_while_waiting(self) -> None:
        handler = _Recorder()
        queue = ReconcileQueue(handler, workers=1)
        queue.enqueue(_A)
        queue.enqueue(_A)
        queue.enqueue(_B)
        assert len(queue) == 2

        await queue.start()
        try:
            await asyncio.wait_for(queue.join(), timeout=2.0)
            assert handler.calls == [_A, _B]
        finally:
            await queue.stop()

    async def test_same_identity_never_processed_concurrently(self) -> None:
        handler = _Recorder(delay=0.05)
        queue = ReconcileQueue(handler, workers=4)
        await queue.start()
        try:
            queue.enqueue(_A)
            await _wait_for(lambda: _A in handler.active)
            queue.enqueue(_A)
            queue.enqueue(_A)
            await _wait_for(lambda: len(handler.calls) == 2)
            await asyncio.wait_for(queue.join(), timeout=2.0)
            assert handler.overlaps == 0
            assert handler.calls == [_A, _A]
        finally:
            await queue.stop()

    async def test_different_identities_run_in_parallel(self) -> None:
        handler = _Recorder(delay=0.05)
        queue = ReconcileQueue(handler, workers=2)
        await queue.start()
        try:
            queue.enqueue(_A)
            queue.enqueue(_B)
            await _wait_for(lambda: len(handler.active) == 2)
        finally:
            await queue.stop()


# ---------------------------------------------------------------------------
# Failure requeue
# ---------------------------------------------------------------------------


class TestRequeue:
    async def test_failed_pass_is_retried_after_backoff(self) -> None:
        handler = _Recorder(fail_times=2)
        queue = ReconcileQueue(handler, workers=1, base_delay=0.01, max_delay=0.05)
        await queue.start()
        try:
            queue.enqueue(_A)
            await _wait_for(lambda: len(handler.calls) == 3)
            await _wait_for(lambda: queue.failures(_A) == 0)
        finally:
            await queue.stop()

    def test_backoff_delay_is_exponential_and_capped(self) -> None:
        queue = ReconcileQueue(_Recorder(), base_delay=1.0, max_delay=10.0)
        assert [queue.backoff_delay(n) for n in (1, 2, 3, 4, 5)] == [1.0, 2.0, 4.0, 8.0, 10.0]

    async def test_stop_cancels_pending_requeue(self) -> None:
        handler = _Recorder(fail_times=1)
        queue = ReconcileQueue(handler, workers=1, base_delay=0.05)
        await queue.start()
        queue.enqueue(_A)
        await _wait_for(lambda: queue.failures(_A) == 1)
        await queue.stop()
        await asyncio.sleep(0.1)
        assert handler.calls == [_A]
        assert queue.running is False
