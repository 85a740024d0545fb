"""
Django admin configuration for stored cluster events.
"""

from django.contrib import admin

from .models import ClusterEvent


@admin.register(ClusterEvent)
class ClusterEventAdmin(admin.ModelAdmin):
    """Admin for ClusterEvent model."""

    list_display = [
        "last_timestamp",
        "namespace",
        "type",
        "reason",
        "involved_kind",
        "involved_name",
    ]
    list_filter = ["type", "namespace"]
    search_fields = ["uid", "name", "reason", "message", "involved_name"]
    readonly_fields = [field.name for field in ClusterEvent._meta.fields]
    ordering = ["-last_timestamp"]

    def has_add_permission(self, request):
        """Events arrive through the ingest API, not manually."""
        return False
