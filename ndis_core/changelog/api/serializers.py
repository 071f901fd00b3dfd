# ndis_core/changelog/api/serializers.py
from rest_framework import serializers

from ndis_core.changelog.models import ChangeLogEntry


class ChangeLogEntrySerializer(serializers.ModelSerializer):
    actor_user_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = ChangeLogEntry
        fields = [
            "id",
            "tenant_id",
            "actor_type",
            "actor_user_id",
            "action",
            "entity_type",
            "entity_id",
            "before_json",
            "after_json",
            "occurred_at",
        ]
        read_only_fields = fields
