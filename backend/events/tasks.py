"""Background tasks for stored cluster events."""

from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from events.models import ClusterEvent
from scheduler import Every, register

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS = 3600


def get_retention_seconds() -> int:
    value = getattr(settings, "EVENTS_RETENTION_SECONDS", DEFAULT_RETENTION_SECONDS)
    if not isinstance(value, int) or isinstance(value, bool) or value < 60:
        return DEFAULT_RETENTION_SECONDS
    return value


@register(
    "events_cleanup",
    schedule=Every(seconds=3600, jitter=60),
    description="Deletes stored cluster events older than the configured retention period.",
)
def cleanup_events() -> int:
    """
    Delete ClusterEvent rows whose last observation is older than EVENTS_RETENTION_SECONDS.

    Rows without a timestamp age out by their last update instead.
    Returns the count of deleted records.
    """
    retention_seconds = get_retention_seconds()
    cutoff = timezone.now() - timedelta(seconds=retention_seconds)

    deleted_count, _ = ClusterEvent.objects.filter(last_timestamp__lt=cutoff).delete()
    undated_count, _ = ClusterEvent.objects.filter(
        last_timestamp__isnull=True, updated_at__lt=cutoff
    ).delete()
    deleted_count += undated_count

    if deleted_count > 0:
        logger.info(
            "Cleaned up %d cluster events older than %d seconds (cutoff: %s)",
            deleted_count,
            retention_seconds,
            cutoff.isoformat(),
        )

    return deleted_count
