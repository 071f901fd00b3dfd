from rest_framework import serializers

from ndis_core.findings.models import (
    EvidenceItem,
    EvidenceRequest,
    EvidenceStatus,
    EvidenceType,
    Finding,
    FindingStatus,
    StorageKind,
)


class FindingSerializer(serializers.ModelSerializer):
    audit_id = serializers.UUIDField(read_only=True)
    audit_title = serializers.CharField(source="audit.title", read_only=True)
    indicator_id = serializers.UUIDField(read_only=True)
    indicator_text = serializers.CharField(source="indicator.indicator_text", read_only=True)
    owner_user_id = serializers.IntegerField(read_only=True, allow_null=True)
    closed_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Finding
        fields = [
            "id",
            "tenant_id",
            "audit_id",
            "audit_title",
            "indicator_id",
            "indicator_text",
            "severity",
            "finding_text",
            "status",
            "owner_user_id",
            "due_date",
            "closure_note",
            "closed_at",
            "closed_by_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class FindingUpdateSerializer(serializers.Serializer):
    owner_user_id = serializers.IntegerField(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=FindingStatus.choices, required=False)


class EvidenceItemSerializer(serializers.ModelSerializer):
    uploaded_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = EvidenceItem
        fields = [
            "id",
            "storage_kind",
            "file_name",
            "file_path",
            "mime_type",
            "file_size_bytes",
            "external_url",
            "note",
            "uploaded_by_id",
            "created_at",
        ]
        read_only_fields = fields


class EvidenceRequestSerializer(serializers.ModelSerializer):
    finding_id = serializers.UUIDField(read_only=True, allow_null=True)
    audit_id = serializers.UUIDField(read_only=True, allow_null=True)
    template_indicator_id = serializers.UUIDField(read_only=True, allow_null=True)
    requested_by_id = serializers.IntegerField(read_only=True, allow_null=True)
    reviewed_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = EvidenceRequest
        fields = [
            "id",
            "tenant_id",
            "finding_id",
            "audit_id",
            "template_indicator_id",
            "evidence_type",
            "request_note",
            "due_date",
            "status",
            "requested_by_id",
            "submitted_at",
            "reviewed_by_id",
            "reviewed_at",
            "review_note",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class EvidenceRequestDetailSerializer(EvidenceRequestSerializer):
    items = EvidenceItemSerializer(many=True, read_only=True)

    class Meta(EvidenceRequestSerializer.Meta):
        fields = [*EvidenceRequestSerializer.Meta.fields, "items"]
        read_only_fields = fields


class RequestEvidenceSerializer(serializers.Serializer):
    evidence_type = serializers.ChoiceField(choices=EvidenceType.choices)
    request_note = serializers.CharField(allow_blank=True)
    due_date = serializers.DateField(required=False, allow_null=True)


class EvidenceRequestCreateSerializer(RequestEvidenceSerializer):
    """Standalone or audit-linked request."""
    audit_id = serializers.UUIDField(required=False, allow_null=True)
    template_indicator_id = serializers.UUIDField(required=False, allow_null=True)


class EvidenceSubmitSerializer(serializers.Serializer):
    storage_kind = serializers.ChoiceField(choices=StorageKind.choices)
    file_name = serializers.CharField(max_length=255, allow_blank=True)
    file_path = serializers.CharField(max_length=1024, required=False, allow_blank=True)
    mime_type = serializers.CharField(max_length=128, required=False, allow_blank=True)
    file_size_bytes = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    external_url = serializers.URLField(max_length=2048, required=False, allow_blank=True)
    note = serializers.CharField(required=False, allow_blank=True)


class EvidenceReviewSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[EvidenceStatus.ACCEPTED, EvidenceStatus.REJECTED])
    review_note = serializers.CharField(required=False, allow_blank=True)
