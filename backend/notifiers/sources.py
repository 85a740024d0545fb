"""Database-backed subscriber, event and status collaborators for the reconciler."""

from __future__ import annotations

import logging

from django.db import DatabaseError
from django.utils import timezone

from events.models import ClusterEvent
from notifiers.engine.errors import SourceError, StatusUpdateError
from notifiers.engine.types import DispatchOutcome, Event, ObjectReference, Subscriber
from notifiers.models import Notifier

logger = logging.getLogger(__name__)


def _strings(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v for v in value if isinstance(v, str) and v)


def subscriber_from_notifier(notifier: Notifier) -> Subscriber:
    return Subscriber(
        name=notifier.name,
        channel=notifier.channel,
        webhook=notifier.webhook,
        namespaces=_strings(notifier.namespaces),
        event_types=_strings(notifier.event_types),
        event_reasons=_strings(notifier.event_reasons),
        event_object_types=_strings(notifier.event_object_types),
        message_contains=_strings(notifier.message_contains),
        message_prefix=notifier.message_prefix or "",
        enable_verbose=bool(notifier.enable_verbose),
        auth_token=notifier.auth_token or "",
        key=notifier.pk,
        recent_events=_strings(notifier.recent_events),
    )


def event_from_row(row: ClusterEvent) -> Event:
    return Event(
        uid=row.uid,
        name=row.name,
        namespace=row.namespace,
        type=row.type,
        reason=row.reason,
        message=row.message,
        timestamp=row.last_timestamp,
        object=ObjectReference(kind=row.involved_kind, name=row.involved_name),
    )


class NotifierSubscriberSource:
    """Enabled Notifier rows, read fresh on every call."""

    def list_subscribers(self) -> list[Subscriber]:
        try:
            rows = list(Notifier.objects.filter(is_enabled=True).order_by("name"))
        except DatabaseError as exc:
            raise SourceError("notifiers", exc) from exc
        return [subscriber_from_notifier(row) for row in rows]


class ClusterEventSource:
    """Every stored ClusterEvent, oldest observation first."""

    def list_events(self) -> list[Event]:
        try:
            rows = list(ClusterEvent.objects.order_by("last_timestamp", "id"))
        except DatabaseError as exc:
            raise SourceError("events", exc) from exc
        return [event_from_row(row) for row in rows]


class NotifierStatusSink:
    """Writes dispatch outcomes onto the Notifier row without firing save signals."""

    def write_status(self, subscriber: Subscriber, outcome: DispatchOutcome) -> None:
        fields = {
            "recent_events": outcome.recent_events,
            "status_message": outcome.status_message,
            "status_updated_at": timezone.now(),
        }
        if outcome.last_event_time is not None:
            fields["last_event_time"] = outcome.last_event_time

        try:
            updated = Notifier.objects.filter(pk=subscriber.key).update(**fields)
        except DatabaseError as exc:
            raise StatusUpdateError(subscriber.name, exc) from exc

        if not updated:
            raise StatusUpdateError(subscriber.name, "notifier no longer exists")
        logger.debug("Updated status for notifier %s: %s", subscriber.name, outcome.status_message)
