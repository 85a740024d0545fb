from __future__ import annotations

from rest_framework import serializers

from events.models import ClusterEvent


class ClusterEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClusterEvent
        fields = [
            "id",
            "uid",
            "name",
            "namespace",
            "type",
            "reason",
            "message",
            "involved_kind",
            "involved_name",
            "last_timestamp",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
