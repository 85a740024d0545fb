from __future__ import annotations

from datetime import datetime, timezone

from events.models import ClusterEvent
from notifiers.models import Notifier

T0 = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


def create_notifier(name="ops", **overrides) -> Notifier:
    fields = {
        "name": name,
        "channel": Notifier.Channel.SLACK,
        "webhook": "https://hooks.slack.com/services/T/B/X",
        "namespaces": ["default"],
        "event_types": ["Warning"],
    }
    fields.update(overrides)
    return Notifier.objects.create(**fields)


def create_event(uid="e1", **overrides) -> ClusterEvent:
    fields = {
        "uid": uid,
        "name": f"{uid}.17a",
        "namespace": "default",
        "type": "Warning",
        "reason": "BackOff",
        "message": "Back-off restarting failed container",
        "involved_kind": "Pod",
        "involved_name": "web-1",
        "last_timestamp": T0,
    }
    fields.update(overrides)
    return ClusterEvent.objects.create(**fields)
