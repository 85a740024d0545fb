"""Tests for the notifier reconciliation loop."""

import threading
import time
from unittest import TestCase
from unittest.mock import MagicMock, patch

from notifications.handlers.base import NotificationResult
from notifications.handlers.slack import SlackHandler
from notifiers.engine.config import EngineConfig
from notifiers.engine.context import CycleContext
from notifiers.engine.dedup import DedupCache
from notifiers.engine.dispatcher import RateLimitedDispatcher
from notifiers.engine.errors import CycleCancelledError, SourceError, StatusUpdateError
from notifiers.engine.rate_limiter import TokenBucket
from notifiers.engine.reconciler import CycleState, NotifierReconciler, default_sink_factory
from notifiers.engine.stats import EngineStats

from .fakes import (
    T0,
    FakeClock,
    RecordingSink,
    RecordingStatusSink,
    StaticEventSource,
    StaticSubscriberSource,
    make_event,
    make_subscriber,
)


class ReconcilerTestCase(TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.dedup = DedupCache(retention_seconds=300, clock=self.clock)
        self.stats = EngineStats()
        self.sink = RecordingSink()
        self.status = RecordingStatusSink()

    def build(self, subscribers, events, *, config=None, bucket=None, acquire_timeout_sec=None, sink_factory=None):
        bucket = bucket or TokenBucket(rate_per_sec=100, burst=100)
        return NotifierReconciler(
            subscribers=StaticSubscriberSource(subscribers),
            events=StaticEventSource(events),
            status=self.status,
            dispatcher=RateLimitedDispatcher(bucket, acquire_timeout_sec=acquire_timeout_sec),
            dedup=self.dedup,
            config=config or EngineConfig(),
            stats=self.stats,
            sink_factory=sink_factory or (lambda subscriber: self.sink),
        )


class TestReconcileDispatch(ReconcilerTestCase):
    def test_matching_event_is_sent_and_status_written(self):
        reconciler = self.build([make_subscriber("ops", message_prefix="[prod]")], [make_event("e1")])

        result = reconciler.reconcile(CycleContext(timeout_sec=5))

        self.assertEqual(result.dispatched, 1)
        self.assertEqual(len(self.sink.messages), 1)
        self.assertTrue(self.sink.messages[0].startswith("*[prod]*\n*Pod* in namespace *default*"))

        (outcome,) = self.status.written("ops")
        self.assertEqual(outcome.recent_events, ["BackOff: Back-off restarting failed container"])
        self.assertEqual(outcome.status_message, "Processed 1 events")
        self.assertEqual(outcome.last_event_time, T0)
        self.assertEqual(reconciler.state, CycleState.IDLE)

    def test_no_status_write_when_nothing_sent(self):
        reconciler = self.build([make_subscriber("ops")], [make_event("e1", namespace="kube-system")])

        result = reconciler.reconcile()

        self.assertEqual(result.filtered, 1)
        self.assertEqual(result.dispatched, 0)
        self.assertEqual(self.status.writes, [])
        self.assertEqual(result.outcomes["ops"].count, 0)

    def test_dedup_window_across_cycles(self):
        """Sent at t=0, suppressed at t=299, sent again at t=300."""
        subscribers = [make_subscriber("ops")]
        events = [make_event("e1")]

        first = self.build(subscribers, events).reconcile()
        self.clock.now = 299
        second = self.build(subscribers, events).reconcile()
        self.clock.now = 300
        third = self.build(subscribers, events).reconcile()

        self.assertEqual(first.dispatched, 1)
        self.assertEqual(second.dispatched, 0)
        self.assertEqual(second.deduplicated, 1)
        self.assertEqual(third.dispatched, 1)
        self.assertEqual(len(self.sink.messages), 2)
        self.assertEqual(len(self.status.written("ops")), 2)

    def test_global_scope_sends_event_once_across_subscribers(self):
        subscribers = [make_subscriber("a"), make_subscriber("b")]

        result = self.build(subscribers, [make_event("e1")]).reconcile()

        self.assertEqual(result.dispatched, 1)
        self.assertEqual(result.deduplicated, 1)
        self.assertEqual(result.outcomes["a"].count, 1)
        self.assertEqual(result.outcomes["b"].count, 0)

    def test_subscriber_scope_sends_to_every_subscriber(self):
        subscribers = [make_subscriber("a"), make_subscriber("b")]
        config = EngineConfig(dedup_scope="subscriber")

        result = self.build(subscribers, [make_event("e1")], config=config).reconcile()

        self.assertEqual(result.dispatched, 2)
        self.assertTrue(self.dedup.already_sent(("a", "e1")))
        self.assertTrue(self.dedup.already_sent(("b", "e1")))

    def test_append_history_keeps_latest_entries(self):
        subscriber = make_subscriber("ops", recent_events=("Old: one", "Old: two"))
        config = EngineConfig(status_history="append", recent_events_limit=2)

        self.build([subscriber], [make_event("e1")], config=config).reconcile()

        (outcome,) = self.status.written("ops")
        self.assertEqual(outcome.recent_events, ["Old: two", "BackOff: Back-off restarting failed container"])

    def test_overwrite_history_ignores_previous_entries(self):
        subscriber = make_subscriber("ops", recent_events=("Old: one",))

        self.build([subscriber], [make_event("e1")]).reconcile()

        (outcome,) = self.status.written("ops")
        self.assertEqual(outcome.recent_events, ["BackOff: Back-off restarting failed container"])


class TestReconcileFailures(ReconcilerTestCase):
    def test_failed_delivery_is_not_deduplicated(self):
        self.sink.results = [NotificationResult.error("boom", code="SERVER_ERROR")]
        subscribers = [make_subscriber("ops")]
        events = [make_event("e1")]

        with self.assertLogs("notifiers.engine.reconciler", level="WARNING"):
            first = self.build(subscribers, events).reconcile()
        second = self.build(subscribers, events).reconcile()

        self.assertEqual(first.failed, 1)
        self.assertEqual(first.dispatched, 0)
        self.assertEqual(len(self.status.written("ops")), 1)
        self.assertEqual(second.dispatched, 1)
        self.assertEqual(self.stats.delivery_failed, 1)

    def test_rate_limit_exhaustion_counts_as_failure(self):
        bucket = TokenBucket(rate_per_sec=0.01, burst=1)
        reconciler = self.build(
            [make_subscriber("ops")],
            [make_event("e1"), make_event("e2")],
            bucket=bucket,
            acquire_timeout_sec=0.05,
        )

        with self.assertLogs("notifiers.engine.reconciler", level="WARNING"):
            result = reconciler.reconcile(CycleContext())

        self.assertEqual(result.dispatched, 1)
        self.assertEqual(result.failed, 1)
        self.assertEqual(self.stats.rate_limited, 1)
        self.assertFalse(self.dedup.already_sent("e2"))

    def test_event_source_error_aborts_cycle(self):
        reconciler = NotifierReconciler(
            subscribers=StaticSubscriberSource([make_subscriber("ops")]),
            events=StaticEventSource(error=RuntimeError("db down")),
            status=self.status,
            dispatcher=RateLimitedDispatcher(TokenBucket(rate_per_sec=10, burst=10)),
            dedup=self.dedup,
            stats=self.stats,
            sink_factory=lambda subscriber: self.sink,
        )

        with self.assertRaises(SourceError) as ctx:
            reconciler.reconcile()

        self.assertEqual(ctx.exception.source, "events")
        self.assertEqual(self.sink.messages, [])
        self.assertEqual(self.stats.cycles_failed, 1)

    def test_subscriber_source_error_aborts_cycle(self):
        reconciler = NotifierReconciler(
            subscribers=StaticSubscriberSource(error=RuntimeError("db down")),
            events=StaticEventSource([make_event()]),
            status=self.status,
            dispatcher=RateLimitedDispatcher(TokenBucket(rate_per_sec=10, burst=10)),
            dedup=self.dedup,
            sink_factory=lambda subscriber: self.sink,
        )

        with self.assertRaises(SourceError) as ctx:
            reconciler.reconcile()
        self.assertEqual(ctx.exception.source, "notifiers")

    def test_status_error_raised_after_remaining_subscribers(self):
        self.status.fail_for = {"a"}
        subscribers = [
            make_subscriber("a", namespaces=("team-a",)),
            make_subscriber("b", namespaces=("team-b",)),
        ]
        events = [make_event("ea", namespace="team-a"), make_event("eb", namespace="team-b")]

        with self.assertLogs("notifiers.engine.reconciler", level="ERROR"):
            with self.assertRaises(StatusUpdateError) as ctx:
                self.build(subscribers, events).reconcile()

        self.assertEqual(ctx.exception.subscriber, "a")
        self.assertEqual(len(self.sink.messages), 2)
        self.assertEqual(len(self.status.written("b")), 1)
        self.assertTrue(self.dedup.already_sent("ea"))

    def test_unknown_channel_skips_subscriber(self):
        def factory(subscriber):
            if subscriber.channel != "slack":
                return default_sink_factory(subscriber)
            return self.sink

        subscribers = [
            make_subscriber("a", channel="teams", namespaces=("team-a",)),
            make_subscriber("b", namespaces=("team-b",)),
        ]
        events = [make_event("ea", namespace="team-a"), make_event("eb", namespace="team-b")]

        with self.assertLogs("notifiers.engine.reconciler", level="WARNING"):
            result = self.build(subscribers, events, sink_factory=factory).reconcile()

        self.assertEqual(result.skipped_subscribers, 1)
        self.assertNotIn("a", result.outcomes)
        self.assertEqual(result.outcomes["b"].count, 1)


class TestReconcileCancellation(ReconcilerTestCase):
    def test_cancelled_before_start(self):
        context = CycleContext(timeout_sec=5)
        context.cancel()

        with self.assertRaises(CycleCancelledError):
            self.build([make_subscriber("ops")], [make_event("e1")]).reconcile(context)

        self.assertEqual(self.sink.messages, [])
        self.assertEqual(self.stats.cycles_cancelled, 1)

    def test_cancelled_mid_cycle_stops_dispatching(self):
        context = CycleContext(timeout_sec=5)
        self.sink.on_send = lambda message: context.cancel()
        reconciler = self.build([make_subscriber("ops")], [make_event("e1"), make_event("e2")])

        with self.assertRaises(CycleCancelledError):
            reconciler.reconcile(context)

        self.assertEqual(len(self.sink.messages), 1)
        self.assertTrue(self.dedup.already_sent("e1"))
        self.assertFalse(self.dedup.already_sent("e2"))
        (outcome,) = self.status.written("ops")
        self.assertEqual(outcome.recent_events, ["BackOff: Back-off restarting failed container"])
        self.assertEqual(reconciler.state, CycleState.IDLE)

    def test_cancel_during_last_send_is_not_reported_as_success(self):
        context = CycleContext(timeout_sec=5)
        self.sink.on_send = lambda message: context.cancel()
        reconciler = self.build([make_subscriber("ops")], [make_event("e1")])

        with self.assertRaises(CycleCancelledError):
            reconciler.reconcile(context)

        self.assertTrue(self.dedup.already_sent("e1"))
        self.assertEqual(len(self.status.written("ops")), 1)
        self.assertEqual(self.stats.cycles_cancelled, 1)

    def test_cancel_aborts_in_flight_sink_request(self):
        release = threading.Event()
        self.addCleanup(release.set)

        def slow_post(*args, **kwargs):
            release.wait(5)
            response = MagicMock()
            response.status_code = 200
            response.text = "ok"
            return response

        context = CycleContext(timeout_sec=60)
        timer = threading.Timer(0.2, context.cancel)
        self.addCleanup(timer.cancel)
        sink = SlackHandler().bind({"url": "https://hooks.example.com/ops"})
        reconciler = self.build([make_subscriber("ops")], [make_event("e1")], sink_factory=lambda s: sink)

        started = time.monotonic()
        with patch("httpx.Client.post", side_effect=slow_post):
            timer.start()
            with self.assertRaises(CycleCancelledError):
                reconciler.reconcile(context)
        elapsed = time.monotonic() - started

        self.assertLess(elapsed, 2.0)
        self.assertFalse(self.dedup.already_sent("e1"))
        self.assertEqual(self.status.writes, [])

    def test_status_write_failure_during_cancel_still_raises_cancel(self):
        self.status.fail_for = {"ops"}
        context = CycleContext(timeout_sec=5)
        self.sink.on_send = lambda message: context.cancel()
        reconciler = self.build([make_subscriber("ops")], [make_event("e1")])

        with self.assertLogs("notifiers.engine.reconciler", level="ERROR"):
            with self.assertRaises(CycleCancelledError):
                reconciler.reconcile(context)


class TestVerboseLogging(ReconcilerTestCase):
    def test_verbose_subscriber_logs_decisions(self):
        subscribers = [make_subscriber("ops", enable_verbose=True)]
        events = [make_event("e1"), make_event("e2", type="Normal")]
        self.build(subscribers, events).reconcile()

        with self.assertLogs("notifiers.engine.reconciler", level="INFO") as logs:
            self.build(subscribers, events).reconcile()

        output = "\n".join(logs.output)
        self.assertIn("event e1 already sent", output)
        self.assertIn("event e2 filtered out by type", output)
