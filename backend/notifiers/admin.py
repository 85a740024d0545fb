"""
Django admin configuration for notifiers.
"""

from django.contrib import admin

from .models import Notifier


@admin.register(Notifier)
class NotifierAdmin(admin.ModelAdmin):
    """Admin for Notifier model."""

    list_display = [
        "name",
        "channel",
        "is_enabled",
        "last_event_time",
        "status_message",
        "updated_at",
    ]
    list_filter = ["channel", "is_enabled"]
    search_fields = ["name", "webhook"]
    readonly_fields = [
        "last_event_time",
        "recent_events",
        "status_message",
        "status_updated_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["name"]

    fieldsets = [
        (None, {"fields": ["name", "channel", "webhook", "auth_token", "is_enabled"]}),
        (
            "Filters",
            {"fields": ["namespaces", "event_types", "event_reasons", "event_object_types", "message_contains"]},
        ),
        ("Message", {"fields": ["message_prefix", "enable_verbose"]}),
        (
            "Status",
            {"fields": ["last_event_time", "recent_events", "status_message", "status_updated_at"]},
        ),
        ("Metadata", {"fields": ["created_at", "updated_at"]}),
    ]
