"""
Serializers for the notifiers API.
"""

from rest_framework import serializers

from notifications.handlers import get_handler
from notifications.handlers.base import sink_config

from .models import Notifier

_WEBHOOK_PATTERN = r"^https?://.+"


def _string_list(*, required: bool) -> serializers.ListField:
    return serializers.ListField(
        child=serializers.CharField(max_length=253, trim_whitespace=True, allow_blank=False),
        allow_empty=not required,
        required=required,
    )


class NotifierSerializer(serializers.ModelSerializer):
    """Serializer for Notifier model."""

    channel_display = serializers.CharField(source="get_channel_display", read_only=True)
    webhook = serializers.RegexField(_WEBHOOK_PATTERN, max_length=2048)
    auth_token = serializers.CharField(max_length=512, required=False, allow_blank=True, write_only=True)
    has_auth_token = serializers.SerializerMethodField()

    namespaces = _string_list(required=True)
    event_types = _string_list(required=True)
    event_reasons = _string_list(required=False)
    event_object_types = _string_list(required=False)
    message_contains = _string_list(required=False)

    class Meta:
        model = Notifier
        fields = [
            "id",
            "name",
            "channel",
            "channel_display",
            "webhook",
            "auth_token",
            "has_auth_token",
            "namespaces",
            "event_types",
            "event_reasons",
            "event_object_types",
            "message_contains",
            "message_prefix",
            "enable_verbose",
            "is_enabled",
            "last_event_time",
            "recent_events",
            "status_message",
            "status_updated_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "last_event_time",
            "recent_events",
            "status_message",
            "status_updated_at",
            "created_at",
            "updated_at",
        ]

    def get_has_auth_token(self, obj) -> bool:
        return bool(obj.auth_token)

    def validate_channel(self, value):
        """Validate that the channel has a registered sink."""
        try:
            get_handler(value)
        except ValueError:
            raise serializers.ValidationError(f"Unknown channel: {value}")
        return value

    def validate(self, attrs):
        """Validate the resulting sink configuration."""
        channel = attrs.get("channel") or (self.instance.channel if self.instance else Notifier.Channel.SLACK)
        webhook = attrs.get("webhook") or (self.instance.webhook if self.instance else "")
        auth_token = attrs.get("auth_token", self.instance.auth_token if self.instance else "")

        errors = get_handler(channel).validate_config(sink_config(webhook, auth_token))
        if errors:
            raise serializers.ValidationError({"webhook": errors})
        return attrs


class ChannelMetadataSerializer(serializers.Serializer):
    """Serializer for channel metadata."""

    channel = serializers.CharField()
    display_name = serializers.CharField()
    config_schema = serializers.DictField()
