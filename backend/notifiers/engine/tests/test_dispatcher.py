from unittest import TestCase

from notifications.handlers.base import NotificationResult
from notifiers.engine.context import CycleContext
from notifiers.engine.dispatcher import RATE_LIMIT_EXHAUSTED, RateLimitedDispatcher
from notifiers.engine.rate_limiter import TokenBucket

from .fakes import RecordingSink


class TestRateLimitedDispatcher(TestCase):
    def test_send_consumes_a_token(self):
        bucket = TokenBucket(rate_per_sec=0.01, burst=2)
        dispatcher = RateLimitedDispatcher(bucket)
        sink = RecordingSink()

        result = dispatcher.send(sink, "hello", CycleContext(timeout_sec=5))

        self.assertTrue(result.success)
        self.assertEqual(sink.messages, ["hello"])
        self.assertAlmostEqual(bucket.available_tokens, 1.0, delta=0.01)

    def test_sink_failure_is_returned(self):
        dispatcher = RateLimitedDispatcher(TokenBucket(rate_per_sec=10, burst=5))
        sink = RecordingSink(results=[NotificationResult.error("boom", code="SERVER_ERROR")])

        result = dispatcher.send(sink, "hello", CycleContext())

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "SERVER_ERROR")

    def test_exhausted_bucket_returns_rate_limit_error(self):
        bucket = TokenBucket(rate_per_sec=0.01, burst=1)
        bucket.acquire(1)
        dispatcher = RateLimitedDispatcher(bucket, acquire_timeout_sec=0.05)
        sink = RecordingSink()

        result = dispatcher.send(sink, "hello", CycleContext())

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, RATE_LIMIT_EXHAUSTED)
        self.assertEqual(sink.messages, [])

    def test_cancelled_context_does_not_send(self):
        bucket = TokenBucket(rate_per_sec=0.01, burst=1)
        bucket.acquire(1)
        dispatcher = RateLimitedDispatcher(bucket)
        context = CycleContext()
        context.cancel()
        sink = RecordingSink()

        result = dispatcher.send(sink, "hello", context)

        self.assertFalse(result.success)
        self.assertEqual(sink.messages, [])

    def test_sink_receives_the_cycle_cancel_event(self):
        dispatcher = RateLimitedDispatcher(TokenBucket(rate_per_sec=10, burst=5))
        context = CycleContext(timeout_sec=5)
        sink = RecordingSink()

        dispatcher.send(sink, "hello", context)

        self.assertIs(sink.cancel_events[0], context.cancel_event)
