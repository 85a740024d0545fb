from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models


class Notifier(models.Model):
    """A declarative notification subscriber: filter criteria plus one sink."""

    class Channel(models.TextChoices):
        SLACK = "slack", "Slack"
        WEBHOOK = "webhook", "Webhook"

    name = models.CharField(max_length=100, unique=True)
    channel = models.CharField(
        max_length=50,
        choices=Channel.choices,
        default=Channel.SLACK,
        help_text="Sink type used to deliver notifications",
    )
    webhook = models.CharField(max_length=2048, help_text="Target sink URL")
    auth_token = models.CharField(
        max_length=512,
        blank=True,
        help_text="Optional bearer token sent to generic webhooks",
    )

    namespaces = models.JSONField(default=list, help_text="Namespaces to admit (required)")
    event_types = models.JSONField(default=list, help_text="Event types to admit, e.g. Normal, Warning (required)")
    event_reasons = models.JSONField(default=list, blank=True, help_text="Reasons to admit; empty admits any")
    event_object_types = models.JSONField(
        default=list,
        blank=True,
        help_text="Involved object kinds to admit; empty admits any",
    )
    message_contains = models.JSONField(
        default=list,
        blank=True,
        help_text="Case-insensitive substrings; the message must contain at least one",
    )
    message_prefix = models.CharField(max_length=200, blank=True)
    enable_verbose = models.BooleanField(default=False)
    is_enabled = models.BooleanField(default=True)

    # Status written by the reconcile loop
    last_event_time = models.DateTimeField(null=True, blank=True)
    recent_events = models.JSONField(default=list, blank=True)
    status_message = models.CharField(max_length=200, blank=True)
    status_updated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Notifier"
        verbose_name_plural = "Notifiers"

    def __str__(self):
        return f"{self.name} ({self.get_channel_display()})"

    def clean(self):
        errors = {}
        for field in ("namespaces", "event_types"):
            value = getattr(self, field)
            if not isinstance(value, list) or not any(isinstance(v, str) and v for v in value):
                errors[field] = "At least one value is required."
        if errors:
            raise ValidationError(errors)
