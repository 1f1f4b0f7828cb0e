"""
Cooperative Cancellation
========================

Thread-safe cancellation flag shared between the recompute worker
(on the event loop) and a grid computation running in an executor
thread. The computation polls the token between work units and
raises ComputationCancelled once it is set.
"""

import threading


class ComputationCancelled(Exception):
    """Raised inside a computation whose token was cancelled."""
    pass


class CancellationToken:
    """One-shot cancellation flag."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ComputationCancelled()
