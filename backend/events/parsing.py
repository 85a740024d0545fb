from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from typing import Any

from django.utils import timezone
from django.utils.dateparse import parse_datetime

WATCH_DELETED = "DELETED"
_WATCH_TYPES = frozenset({"ADDED", "MODIFIED", WATCH_DELETED, "SYNC"})


def _str(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _coerce_dt(value: object) -> datetime | None:
    """Parse an RFC3339 timestamp into an aware datetime, returning None when invalid."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = parse_datetime(value.strip())
    except ValueError:
        return None
    if parsed is None:
        return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


@dataclass(frozen=True)
class ParsedEvent:
    uid: str
    name: str
    namespace: str
    type: str
    reason: str
    message: str
    involved_kind: str
    involved_name: str
    last_timestamp: datetime | None
    raw: dict[str, Any]


def parse_k8s_event(obj: object) -> ParsedEvent | None:
    """
    Parse a Kubernetes Event object (core/v1 or events.k8s.io/v1).

    Typical core/v1 shape:
    {
      "metadata": {"uid": "...", "name": "web-1.17a", "namespace": "default"},
      "type": "Warning",
      "reason": "BackOff",
      "message": "Back-off restarting failed container",
      "involvedObject": {"kind": "Pod", "name": "web-1", "namespace": "default"},
      "lastTimestamp": "2024-05-01T10:00:00Z"
    }

    events.k8s.io/v1 uses `regarding`, `note` and `eventTime`/`series.lastObservedTime`
    instead. Returns None when the uid, namespace or type is missing.
    """
    if not isinstance(obj, dict):
        return None

    metadata = obj.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    involved = obj.get("involvedObject")
    if not isinstance(involved, dict):
        involved = obj.get("regarding")
    if not isinstance(involved, dict):
        involved = {}

    uid = _str(metadata.get("uid"))
    namespace = _str(metadata.get("namespace")) or _str(involved.get("namespace"))
    event_type = _str(obj.get("type"))
    if not uid or not namespace or not event_type:
        return None

    message = obj.get("message")
    if message is None:
        message = obj.get("note")

    series = obj.get("series")
    last_timestamp = (
        _coerce_dt(obj.get("lastTimestamp"))
        or (_coerce_dt(series.get("lastObservedTime")) if isinstance(series, dict) else None)
        or _coerce_dt(obj.get("eventTime"))
        or _coerce_dt(obj.get("firstTimestamp"))
        or _coerce_dt(metadata.get("creationTimestamp"))
    )

    return ParsedEvent(
        uid=uid,
        name=_str(metadata.get("name")),
        namespace=namespace,
        type=event_type,
        reason=_str(obj.get("reason")),
        message="" if message is None else str(message),
        involved_kind=_str(involved.get("kind")),
        involved_name=_str(involved.get("name")),
        last_timestamp=last_timestamp,
        raw=obj,
    )


def iter_event_payloads(payload: object) -> list[tuple[str, object]]:
    """
    Flatten an ingest payload into (watch_type, event_object) pairs.

    Accepts a single Event, a list of Events, an EventList (`{"items": [...]}`)
    or watch envelopes (`{"type": "ADDED", "object": {...}}`), in any mix.
    Bare events are treated as ADDED.
    """
    if isinstance(payload, list):
        out: list[tuple[str, object]] = []
        for item in payload:
            out.extend(iter_event_payloads(item))
        return out

    if not isinstance(payload, dict):
        return [("ADDED", payload)]

    items = payload.get("items")
    if isinstance(items, list):
        return iter_event_payloads(items)

    watch_type = _str(payload.get("type")).upper()
    if watch_type in _WATCH_TYPES and isinstance(payload.get("object"), dict):
        return [(watch_type, payload["object"])]

    return [("ADDED", payload)]
