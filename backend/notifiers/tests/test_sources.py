"""Tests for the ORM-backed reconciler collaborators."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase

from notifiers.engine.errors import SourceError, StatusUpdateError
from notifiers.engine.types import DispatchOutcome
from notifiers.models import Notifier
from notifiers.sources import (
    ClusterEventSource,
    NotifierStatusSink,
    NotifierSubscriberSource,
    subscriber_from_notifier,
)

from .helpers import T0, create_event, create_notifier


class NotifierSubscriberSourceTests(TestCase):
    def test_lists_enabled_notifiers_by_name(self):
        create_notifier("zeta")
        create_notifier("alpha", event_reasons=["BackOff"], auth_token="tok")
        create_notifier("off", is_enabled=False)

        subscribers = NotifierSubscriberSource().list_subscribers()

        self.assertEqual([s.name for s in subscribers], ["alpha", "zeta"])
        self.assertEqual(subscribers[0].event_reasons, ("BackOff",))
        self.assertEqual(subscribers[0].auth_token, "tok")
        self.assertNotIn("tok", repr(subscribers[0]))

    def test_malformed_json_lists_become_empty(self):
        notifier = create_notifier("ops", message_contains="oom")
        subscriber = subscriber_from_notifier(notifier)
        self.assertEqual(subscriber.message_contains, ())

    def test_database_error_becomes_source_error(self):
        with patch.object(Notifier.objects, "filter", side_effect=DatabaseError("locked")):
            with self.assertRaises(SourceError) as ctx:
                NotifierSubscriberSource().list_subscribers()
        self.assertEqual(ctx.exception.source, "notifiers")
        self.assertEqual(ctx.exception.error, "locked")


class ClusterEventSourceTests(TestCase):
    def test_lists_events_oldest_first(self):
        create_event("late", last_timestamp=T0 + timedelta(minutes=5))
        create_event("early", last_timestamp=T0)

        events = ClusterEventSource().list_events()

        self.assertEqual([e.uid for e in events], ["early", "late"])
        self.assertEqual(events[0].object.kind, "Pod")
        self.assertEqual(events[0].timestamp, T0)


class NotifierStatusSinkTests(TestCase):
    def test_writes_status_fields(self):
        notifier = create_notifier("ops")
        subscriber = subscriber_from_notifier(notifier)
        outcome = DispatchOutcome(subscriber="ops", sent=["BackOff: Back-off"], last_event_time=T0)

        NotifierStatusSink().write_status(subscriber, outcome)

        notifier.refresh_from_db()
        self.assertEqual(notifier.recent_events, ["BackOff: Back-off"])
        self.assertEqual(notifier.status_message, "Processed 1 events")
        self.assertEqual(notifier.last_event_time, T0)
        self.assertIsNotNone(notifier.status_updated_at)

    def test_missing_notifier_raises(self):
        notifier = create_notifier("ops")
        subscriber = subscriber_from_notifier(notifier)
        notifier.delete()

        with self.assertRaises(StatusUpdateError) as ctx:
            NotifierStatusSink().write_status(subscriber, DispatchOutcome(subscriber="ops", sent=["x: y"]))
        self.assertEqual(ctx.exception.subscriber, "ops")
