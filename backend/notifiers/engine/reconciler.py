"""The reconciliation loop: filter, deduplicate and dispatch events per subscriber."""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Sequence
from datetime import datetime
from enum import Enum
from time import perf_counter
from typing import TYPE_CHECKING

from django.utils import timezone

from notifications.handlers import get_handler
from notifications.handlers.base import sink_config

from .config import (
    DEDUP_SCOPE_SUBSCRIBER,
    STATUS_HISTORY_APPEND,
    EngineConfig,
)
from .context import CycleContext
from .dedup import DedupCache
from .dispatcher import RATE_LIMIT_EXHAUSTED, RateLimitedDispatcher
from .errors import (
    CycleCancelledError,
    ReconcileError,
    StatusUpdateError,
    UnsupportedChannelError,
)
from .filters import build_notifier_config, explain_mismatch
from .messages import build_event_message
from .sources import EventSource, StatusSink, SubscriberSource
from .stats import EngineStats
from .types import CycleResult, DispatchOutcome, Event, Subscriber

if TYPE_CHECKING:
    from notifications.handlers.base import Sink

logger = logging.getLogger(__name__)

SinkFactory = Callable[[Subscriber], "Sink"]


class CycleState(str, Enum):
    IDLE = "idle"
    LISTING = "listing"
    EVALUATING = "evaluating"
    DISPATCHING = "dispatching"
    STATUS_UPDATE = "status_update"


def default_sink_factory(subscriber: Subscriber) -> "Sink":
    """Resolve the subscriber's channel tag to a sink bound to its webhook."""
    try:
        handler = get_handler(subscriber.channel)
    except ValueError as exc:
        raise UnsupportedChannelError(subscriber.channel) from exc
    return handler.bind(sink_config(subscriber.webhook, subscriber.auth_token))


class NotifierReconciler:
    """
    Runs one reconciliation cycle over fresh subscriber and event snapshots.

    A reconciler instance holds per-cycle state and is meant to be built for
    each trigger; the dedup cache, dispatcher and stats it receives are the
    process-wide shared pieces.
    """

    def __init__(
        self,
        *,
        subscribers: SubscriberSource,
        events: EventSource,
        status: StatusSink,
        dispatcher: RateLimitedDispatcher,
        dedup: DedupCache,
        config: EngineConfig | None = None,
        stats: EngineStats | None = None,
        sink_factory: SinkFactory = default_sink_factory,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self._subscribers = subscribers
        self._events = events
        self._status = status
        self._dispatcher = dispatcher
        self._dedup = dedup
        self._config = config or EngineConfig()
        self._stats = stats or EngineStats()
        self._sink_factory = sink_factory
        self._clock = clock
        self._state = CycleState.IDLE

    @property
    def state(self) -> CycleState:
        return self._state

    def _transition(self, state: CycleState) -> None:
        if state != self._state:
            logger.debug("Reconciler %s -> %s", self._state.value, state.value)
            self._state = state

    def reconcile(self, context: CycleContext | None = None) -> CycleResult:
        """
        Run one cycle.

        Args:
            context: Cancellation/deadline governor (defaults to the configured cycle timeout)

        Returns:
            CycleResult with per-subscriber outcomes and aggregate counts

        Raises:
            SourceError: listing subscribers or events failed
            StatusUpdateError: persisting at least one subscriber's status failed
            CycleCancelledError: the context was cancelled or timed out
        """
        if context is None:
            context = CycleContext(timeout_sec=self._config.cycle_timeout_seconds)

        started = perf_counter()
        try:
            result = self._run(context)
        except CycleCancelledError as exc:
            self._record_cycle(started, error=str(exc), cancelled=True)
            raise
        except ReconcileError as exc:
            self._record_cycle(started, error=str(exc))
            raise
        finally:
            self._transition(CycleState.IDLE)

        self._record_cycle(started)
        logger.debug(
            "Reconcile cycle finished: %d subscribers, %d events, %d dispatched",
            result.subscribers,
            result.events,
            result.dispatched,
        )
        return result

    def _record_cycle(self, started: float, *, error: str | None = None, cancelled: bool = False) -> None:
        self._stats.record_cycle(
            now=self._clock(),
            duration_ms=(perf_counter() - started) * 1000.0,
            error=error,
            cancelled=cancelled,
        )

    def _run(self, context: CycleContext) -> CycleResult:
        self._transition(CycleState.LISTING)
        subscribers = list(self._subscribers.list_subscribers())
        events = list(self._events.list_events())

        result = CycleResult(subscribers=len(subscribers), events=len(events))
        status_errors: list[StatusUpdateError] = []

        for subscriber in subscribers:
            self._raise_if_cancelled(context)

            try:
                sink = self._sink_factory(subscriber)
            except UnsupportedChannelError as exc:
                logger.warning("Skipping notifier %s: %s", subscriber.name, exc)
                result.skipped_subscribers += 1
                continue

            outcome = DispatchOutcome(subscriber=subscriber.name)
            result.outcomes[subscriber.name] = outcome
            try:
                self._process_subscriber(subscriber, sink, events, context, outcome, result)
            except CycleCancelledError:
                # Sends already made are deduped; record them before unwinding.
                self._write_status(subscriber, outcome)
                raise

            status_error = self._write_status(subscriber, outcome)
            if status_error is not None:
                status_errors.append(status_error)

        self._raise_if_cancelled(context)
        if status_errors:
            raise status_errors[0]
        return result

    def _write_status(self, subscriber: Subscriber, outcome: DispatchOutcome) -> StatusUpdateError | None:
        if outcome.count == 0:
            return None

        self._transition(CycleState.STATUS_UPDATE)
        if self._config.status_history == STATUS_HISTORY_APPEND:
            history = [*subscriber.recent_events, *outcome.sent]
            outcome.history = history[-self._config.recent_events_limit:]
        try:
            self._status.write_status(subscriber, outcome)
        except StatusUpdateError as exc:
            logger.error("%s", exc)
            return exc
        return None

    def _process_subscriber(
        self,
        subscriber: Subscriber,
        sink: "Sink",
        events: Sequence[Event],
        context: CycleContext,
        outcome: DispatchOutcome,
        result: CycleResult,
    ) -> None:
        config = build_notifier_config(subscriber)
        verbose = subscriber.enable_verbose

        for event in events:
            self._transition(CycleState.EVALUATING)
            result.evaluated += 1
            key = self._dedup_key(subscriber, event)

            if self._dedup.already_sent(key):
                result.deduplicated += 1
                self._stats.record_dedupe()
                if verbose:
                    logger.info("Notifier %s: event %s already sent, skipping", subscriber.name, event.uid)
                continue

            mismatch = explain_mismatch(config, event)
            if mismatch is not None:
                result.filtered += 1
                self._stats.record_filtered()
                if verbose:
                    logger.info(
                        "Notifier %s: event %s filtered out by %s",
                        subscriber.name,
                        event.uid,
                        mismatch,
                    )
                continue

            self._dispatch(subscriber, sink, event, key, context, outcome, result)

    def _dispatch(
        self,
        subscriber: Subscriber,
        sink: "Sink",
        event: Event,
        key: Hashable,
        context: CycleContext,
        outcome: DispatchOutcome,
        result: CycleResult,
    ) -> None:
        self._raise_if_cancelled(context)
        self._transition(CycleState.DISPATCHING)

        message = build_event_message(event, prefix=subscriber.message_prefix)
        sent = self._dispatcher.send(sink, message, context)

        if sent.success:
            self._dedup.mark_sent(key)
            outcome.record_sent(event)
            result.dispatched += 1
            self._stats.record_dispatch(subscriber.name, self._clock())
            if subscriber.enable_verbose:
                logger.info("Notifier %s: sent event %s (%s)", subscriber.name, event.uid, event.reason)
            self._raise_if_cancelled(context)
            return

        self._raise_if_cancelled(context)

        outcome.failed += 1
        result.failed += 1
        self._stats.record_delivery_failure(
            subscriber.name,
            rate_limited=sent.error_code == RATE_LIMIT_EXHAUSTED,
        )
        logger.warning(
            "Notifier %s: failed to send event %s: %s (%s)",
            subscriber.name,
            event.uid,
            sent.message,
            sent.error_code,
        )

    def _dedup_key(self, subscriber: Subscriber, event: Event) -> Hashable:
        if self._config.dedup_scope == DEDUP_SCOPE_SUBSCRIBER:
            return (subscriber.name, event.uid)
        return event.uid

    def _raise_if_cancelled(self, context: CycleContext) -> None:
        if context.cancelled:
            raise CycleCancelledError("Reconcile cycle cancelled or timed out")
