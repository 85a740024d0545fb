from __future__ import annotations

from django.dispatch import Signal

# Sent after an ingest request stored or removed at least one event.
# kwargs: upserted: int, deleted: int
events_ingested = Signal()
