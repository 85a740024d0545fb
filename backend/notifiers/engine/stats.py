"""Observability counters and statistics for the notifier engine."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class SubscriberStats:
    """Per-subscriber statistics."""

    dispatched: int = 0
    failed: int = 0
    last_dispatch_at: datetime | None = None

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "dispatched": self.dispatched,
            "failed": self.failed,
            "last_dispatch_at": self.last_dispatch_at.isoformat() if self.last_dispatch_at else None,
        }


@dataclass
class EngineStats:
    """Process-wide engine statistics."""

    cycles: int = 0
    cycles_failed: int = 0
    cycles_cancelled: int = 0
    dispatched: int = 0
    delivery_failed: int = 0
    rate_limited: int = 0
    deduplicated: int = 0
    filtered: int = 0
    swept: int = 0
    last_cycle_at: datetime | None = None
    last_cycle_ms: float = 0.0
    last_error: str | None = None

    by_subscriber: dict[str, SubscriberStats] = field(default_factory=dict)

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _subscriber(self, name: str) -> SubscriberStats:
        if name not in self.by_subscriber:
            self.by_subscriber[name] = SubscriberStats()
        return self.by_subscriber[name]

    def record_cycle(self, *, now: datetime, duration_ms: float, error: str | None = None, cancelled: bool = False) -> None:
        """Record a finished cycle (successful or not)."""
        with self._lock:
            self.cycles += 1
            self.last_cycle_at = now
            self.last_cycle_ms = max(0.0, float(duration_ms))
            self.last_error = error
            if cancelled:
                self.cycles_cancelled += 1
            elif error:
                self.cycles_failed += 1

    def record_dispatch(self, subscriber: str, now: datetime) -> None:
        """Record a successful send."""
        with self._lock:
            self.dispatched += 1
            stats = self._subscriber(subscriber)
            stats.dispatched += 1
            stats.last_dispatch_at = now

    def record_delivery_failure(self, subscriber: str, *, rate_limited: bool = False) -> None:
        """Record a failed send; rate-limit exhaustion counts as a failure too."""
        with self._lock:
            self.delivery_failed += 1
            if rate_limited:
                self.rate_limited += 1
            self._subscriber(subscriber).failed += 1

    def record_dedupe(self, count: int = 1) -> None:
        """Record events skipped because they were already sent."""
        with self._lock:
            self.deduplicated += count

    def record_filtered(self, count: int = 1) -> None:
        """Record events rejected by a subscriber's filter."""
        with self._lock:
            self.filtered += count

    def record_sweep(self, count: int) -> None:
        """Record dedup entries evicted by a sweep."""
        with self._lock:
            self.swept += max(0, int(count))

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for API/monitoring."""
        with self._lock:
            return {
                "cycles": self.cycles,
                "cycles_failed": self.cycles_failed,
                "cycles_cancelled": self.cycles_cancelled,
                "dispatched": self.dispatched,
                "delivery_failed": self.delivery_failed,
                "rate_limited": self.rate_limited,
                "deduplicated": self.deduplicated,
                "filtered": self.filtered,
                "swept": self.swept,
                "last_cycle_at": self.last_cycle_at.isoformat() if self.last_cycle_at else None,
                "last_cycle_ms": self.last_cycle_ms,
                "last_error": self.last_error,
                "by_subscriber": {k: v.as_dict() for k, v in self.by_subscriber.items()},
            }

    def reset(self) -> None:
        """Reset all counters (for testing)."""
        with self._lock:
            self.cycles = 0
            self.cycles_failed = 0
            self.cycles_cancelled = 0
            self.dispatched = 0
            self.delivery_failed = 0
            self.rate_limited = 0
            self.deduplicated = 0
            self.filtered = 0
            self.swept = 0
            self.last_cycle_at = None
            self.last_cycle_ms = 0.0
            self.last_error = None
            self.by_subscriber.clear()
