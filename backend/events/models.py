from __future__ import annotations

from django.db import models


class ClusterEvent(models.Model):
    """
    A cluster lifecycle event (Kubernetes `Event`) as last observed.

    Rows are keyed by the event's `metadata.uid`; re-ingesting the same uid
    replaces the stored fields rather than adding a row.
    """

    class Type(models.TextChoices):
        NORMAL = "Normal", "Normal"
        WARNING = "Warning", "Warning"

    uid = models.CharField(max_length=128, unique=True)
    name = models.CharField(max_length=253, blank=True)
    namespace = models.CharField(max_length=253, db_index=True)
    type = models.CharField(max_length=32, db_index=True)
    reason = models.CharField(max_length=128, blank=True, db_index=True)
    message = models.TextField(blank=True)
    involved_kind = models.CharField(max_length=128, blank=True)
    involved_name = models.CharField(max_length=253, blank=True)
    last_timestamp = models.DateTimeField(null=True, blank=True, db_index=True)
    raw = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["last_timestamp", "id"]
        indexes = [
            models.Index(fields=["namespace", "type"], name="events_namespace_type_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        """Return a compact representation for logs/admin lists."""
        return f"{self.namespace}/{self.name} {self.type} {self.reason}"
