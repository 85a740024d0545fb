"""Time-bounded, thread-safe record of already dispatched event identities."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS = 300


class _Shard:
    __slots__ = ("lock", "entries")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.entries: dict[Hashable, float] = {}


class DedupCache:
    """
    Sharded map of dedup key -> last-sent timestamp (monotonic seconds).

    A key is reported as already sent from the moment `mark_sent` returns
    until its age reaches the retention window. `sweep` physically removes
    expired entries; lookups ignore expired entries even before a sweep runs,
    so redelivery becomes possible exactly at `marked_at + retention`.
    """

    def __init__(
        self,
        *,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
        shards: int = 16,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            retention_seconds: How long a key stays marked after being sent
            shards: Number of independently locked partitions
            clock: Monotonic time source (seconds)
        """
        if retention_seconds <= 0:
            raise ValueError("retention_seconds must be positive")
        if shards < 1:
            raise ValueError("shards must be at least 1")

        self._retention = float(retention_seconds)
        self._clock = clock
        self._shards = tuple(_Shard() for _ in range(shards))

    @property
    def retention_seconds(self) -> float:
        return self._retention

    def _shard_for(self, key: Hashable) -> _Shard:
        return self._shards[hash(key) % len(self._shards)]

    def _now(self, now: float | None) -> float:
        return self._clock() if now is None else now

    def already_sent(self, key: Hashable, now: float | None = None) -> bool:
        """Return True if `key` was marked sent within the retention window."""
        now = self._now(now)
        shard = self._shard_for(key)
        with shard.lock:
            marked_at = shard.entries.get(key)
        if marked_at is None:
            return False
        return now - marked_at < self._retention

    def mark_sent(self, key: Hashable, now: float | None = None) -> None:
        """Record that `key` was dispatched at `now`."""
        now = self._now(now)
        shard = self._shard_for(key)
        with shard.lock:
            shard.entries[key] = now

    def sweep(self, now: float | None = None) -> int:
        """
        Remove entries whose age has reached the retention window.

        Returns:
            Number of entries removed
        """
        now = self._now(now)
        removed = 0
        for shard in self._shards:
            with shard.lock:
                expired = [k for k, t in shard.entries.items() if now - t >= self._retention]
                for key in expired:
                    del shard.entries[key]
            removed += len(expired)

        if removed:
            logger.debug("Dedup sweep evicted %d entries", removed)
        return removed

    def clear(self) -> None:
        """Drop every entry (for shutdown/testing)."""
        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.entries)
        return total
