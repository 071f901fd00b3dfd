from rest_framework import serializers

from ndis_core.catalogue.models import AuditDomain, SupportLineItem


class AuditDomainSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditDomain
        fields = ["id", "code", "name", "description", "is_enabled_by_default"]
        read_only_fields = fields


class SelectedLineItemSerializer(serializers.ModelSerializer):
    category_key = serializers.CharField(source="category.category_key", read_only=True)

    class Meta:
        model = SupportLineItem
        fields = ["id", "item_code", "item_label", "budget_group", "category_key"]
        read_only_fields = fields


class ServiceSelectionsUpdateSerializer(serializers.Serializer):
    line_item_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=True)
