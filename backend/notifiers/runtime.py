"""Process-wide notifier engine: shared dedup cache, rate limiter and stats."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from django.db import close_old_connections

from config.domain_exceptions import ServiceUnavailableError
from notifiers.engine.config import EngineConfig, get_engine_config
from notifiers.engine.context import CycleContext
from notifiers.engine.dedup import DedupCache
from notifiers.engine.dispatcher import RateLimitedDispatcher
from notifiers.engine.errors import ReconcileError
from notifiers.engine.rate_limiter import TokenBucket
from notifiers.engine.reconciler import NotifierReconciler, SinkFactory, default_sink_factory
from notifiers.engine.sources import EventSource, StatusSink, SubscriberSource
from notifiers.engine.stats import EngineStats
from notifiers.engine.types import CycleResult

logger = logging.getLogger(__name__)


class NotifierEngine:
    """
    Owns the state shared by every reconcile trigger.

    Each cycle gets its own NotifierReconciler; the dedup cache, token bucket
    and stats here outlive cycles and are shared between overlapping ones.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        subscribers: SubscriberSource | None = None,
        events: EventSource | None = None,
        status: StatusSink | None = None,
        sink_factory: SinkFactory = default_sink_factory,
    ):
        """
        Initialize the engine.

        Args:
            config: Optional configuration, will load from settings if not provided
            subscribers/events/status: Collaborators (default to the ORM-backed ones)
            sink_factory: Resolves a subscriber to a bound sink
        """
        if subscribers is None or events is None or status is None:
            from notifiers.sources import ClusterEventSource, NotifierStatusSink, NotifierSubscriberSource

            subscribers = subscribers or NotifierSubscriberSource()
            events = events or ClusterEventSource()
            status = status or NotifierStatusSink()

        self._config = config or get_engine_config()
        self._subscribers = subscribers
        self._events = events
        self._status = status
        self._sink_factory = sink_factory

        self.dedup = DedupCache(
            retention_seconds=self._config.dedup_retention_seconds,
            shards=self._config.dedup_shards,
        )
        self.bucket = TokenBucket(
            rate_per_sec=self._config.rate_limit_per_sec,
            burst=self._config.rate_limit_burst,
        )
        self.dispatcher = RateLimitedDispatcher(self.bucket)
        self.stats = EngineStats()

        self._lock = threading.Lock()
        self._active_contexts: set[CycleContext] = set()
        self._trigger_pool: ThreadPoolExecutor | None = None
        self._trigger_pending = False
        self._shutdown = False

    @property
    def config(self) -> EngineConfig:
        return self._config

    def build_reconciler(self) -> NotifierReconciler:
        return NotifierReconciler(
            subscribers=self._subscribers,
            events=self._events,
            status=self._status,
            dispatcher=self.dispatcher,
            dedup=self.dedup,
            config=self._config,
            stats=self.stats,
            sink_factory=self._sink_factory,
        )

    def run_cycle(
        self,
        *,
        timeout_sec: float | None = None,
        context: CycleContext | None = None,
    ) -> CycleResult:
        """
        Run one reconcile cycle synchronously in the calling thread.

        Args:
            timeout_sec: Cycle deadline (defaults to cycle_timeout_seconds)
            context: Explicit context; takes precedence over timeout_sec
        """
        if context is None:
            context = CycleContext(timeout_sec=timeout_sec or self._config.cycle_timeout_seconds)

        with self._lock:
            if self._shutdown:
                raise ServiceUnavailableError("Notifier engine is shut down.")
            self._active_contexts.add(context)

        try:
            return self.build_reconciler().reconcile(context)
        finally:
            with self._lock:
                self._active_contexts.discard(context)

    def sweep_dedup(self) -> int:
        """Evict expired dedup entries; returns the number removed."""
        removed = self.dedup.sweep()
        self.stats.record_sweep(removed)
        return removed

    def request_reconcile(self, reason: str) -> bool:
        """
        Queue a background cycle unless one is already waiting to start.

        Returns:
            True if a cycle was queued, False if coalesced into a pending one
        """
        with self._lock:
            if self._shutdown or self._trigger_pending:
                return False
            self._trigger_pending = True
            if self._trigger_pool is None:
                self._trigger_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="notifiers-")
            try:
                self._trigger_pool.submit(self._run_triggered, reason)
            except RuntimeError as exc:
                # Pool may be shutting down
                self._trigger_pending = False
                logger.warning("Failed to queue reconcile (%s): %s", reason, exc)
                return False
        logger.debug("Queued reconcile: %s", reason)
        return True

    def _run_triggered(self, reason: str) -> None:
        with self._lock:
            self._trigger_pending = False

        close_old_connections()
        try:
            result = self.run_cycle()
            logger.debug("Triggered reconcile (%s) dispatched %d events", reason, result.dispatched)
        except ReconcileError as exc:
            logger.warning("Triggered reconcile (%s) failed: %s", reason, exc)
        except Exception:
            logger.exception("Triggered reconcile (%s) crashed", reason)
        finally:
            close_old_connections()

    def get_status(self) -> dict[str, Any]:
        """Get engine status and statistics."""
        with self._lock:
            active_cycles = len(self._active_contexts)
            trigger_pending = self._trigger_pending
        return {
            "config": {
                "rate_limit_per_sec": self._config.rate_limit_per_sec,
                "rate_limit_burst": self._config.rate_limit_burst,
                "dedup_retention_seconds": self._config.dedup_retention_seconds,
                "dedup_scope": self._config.dedup_scope,
                "cycle_timeout_seconds": self._config.cycle_timeout_seconds,
                "status_history": self._config.status_history,
                "reconcile_interval_seconds": self._config.reconcile_interval_seconds,
            },
            "dedup_entries": len(self.dedup),
            "available_tokens": round(self.bucket.available_tokens, 3),
            "active_cycles": active_cycles,
            "trigger_pending": trigger_pending,
            "stats": self.stats.as_dict(),
        }

    def shutdown(self) -> None:
        """Cancel running cycles, drain the trigger pool and drop dedup memory."""
        with self._lock:
            self._shutdown = True
            for context in self._active_contexts:
                context.cancel()
            pool, self._trigger_pool = self._trigger_pool, None

        if pool is not None:
            pool.shutdown(wait=True)
        self.dedup.clear()


# Module-level singleton
_engine: NotifierEngine | None = None
_engine_lock = threading.Lock()


def get_engine() -> NotifierEngine:
    """Get or create the singleton engine instance."""
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = NotifierEngine()
        return _engine


def shutdown_engine() -> None:
    """Shutdown the engine (for process exit or tests)."""
    global _engine
    with _engine_lock:
        engine, _engine = _engine, None
    if engine is not None:
        engine.shutdown()


def run_cycle(*, timeout_sec: float | None = None) -> CycleResult:
    """Run one reconcile cycle on the shared engine."""
    return get_engine().run_cycle(timeout_sec=timeout_sec)


def request_reconcile(reason: str) -> bool:
    """Queue a coalesced background cycle on the shared engine."""
    return get_engine().request_reconcile(reason)


def get_engine_status() -> dict[str, Any]:
    """Get engine status for monitoring endpoints."""
    return get_engine().get_status()
