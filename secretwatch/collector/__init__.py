"""Trigger subsystem for secretwatch.

Submodules
----------
queue   -- ReconcileQueue: dedup, per-identity serialisation, requeue back-off.
watcher -- SecretWatcher: list-then-watch of Secrets feeding the queue.
"""

from secretwatch.collector.queue import ReconcileQueue

__all__ = ["ReconcileQueue"]
