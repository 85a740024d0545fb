"""Cancellation and deadline handling for a reconciliation cycle."""

from __future__ import annotations

import threading
import time


class CycleContext:
    """
    Governs one cycle: an optional deadline plus an explicit cancel signal.

    Blocking operations inside the cycle wait on `cancel_event` so that
    `cancel()` wakes them immediately.
    """

    def __init__(self, *, timeout_sec: float | None = None, cancel_event: threading.Event | None = None):
        self.cancel_event = cancel_event or threading.Event()
        self._deadline = time.monotonic() + timeout_sec if timeout_sec is not None else None

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        if self.cancel_event.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def bound_timeout(self, timeout: float | None) -> float | None:
        """Clamp a per-call timeout to the time left in this context."""
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)
