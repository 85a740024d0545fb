"""Store Kubernetes Event payloads as ClusterEvent rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.db import transaction

from events.models import ClusterEvent
from events.parsing import WATCH_DELETED, iter_event_payloads, parse_k8s_event
from events.signals import events_ingested

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    upserted: int = 0
    deleted: int = 0
    rejected: int = 0
    uids: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "upserted": self.upserted,
            "deleted": self.deleted,
            "rejected": self.rejected,
            "uids": list(self.uids),
        }


def ingest_events(payload: object) -> IngestResult:
    """
    Upsert (or delete, for DELETED watch envelopes) every event in `payload`.

    Unparseable items are counted as rejected and skipped. Listeners of
    `events_ingested` are notified when anything changed.
    """
    result = IngestResult()

    with transaction.atomic():
        for watch_type, obj in iter_event_payloads(payload):
            parsed = parse_k8s_event(obj)
            if parsed is None:
                result.rejected += 1
                continue

            if watch_type == WATCH_DELETED:
                deleted, _ = ClusterEvent.objects.filter(uid=parsed.uid).delete()
                result.deleted += deleted
                continue

            ClusterEvent.objects.update_or_create(
                uid=parsed.uid,
                defaults={
                    "name": parsed.name,
                    "namespace": parsed.namespace,
                    "type": parsed.type,
                    "reason": parsed.reason,
                    "message": parsed.message,
                    "involved_kind": parsed.involved_kind,
                    "involved_name": parsed.involved_name,
                    "last_timestamp": parsed.last_timestamp,
                    "raw": parsed.raw,
                },
            )
            result.upserted += 1
            result.uids.append(parsed.uid)

    if result.rejected:
        logger.warning("Rejected %d unparseable event payload item(s)", result.rejected)
    if result.upserted or result.deleted:
        logger.debug("Ingested events: %d upserted, %d deleted", result.upserted, result.deleted)
        events_ingested.send(sender=ClusterEvent, upserted=result.upserted, deleted=result.deleted)

    return result
