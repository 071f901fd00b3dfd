from rest_framework import serializers

from ndis_core.compliance.models import (
    ActionStatus,
    ComplianceAction,
    ComplianceFrequency,
    ComplianceResponse,
    ComplianceRun,
    ComplianceScopeType,
    ComplianceTemplate,
    ComplianceTemplateItem,
    EvidenceSourceType,
    ResponseType,
)


class ComplianceTemplateItemSerializer(serializers.ModelSerializer):
    template_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ComplianceTemplateItem
        fields = [
            "id",
            "template_id",
            "title",
            "guidance_text",
            "response_type",
            "is_critical",
            "default_evidence_required",
            "evidence_source_type",
            "notes_required_on_fail",
            "sort_order",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ComplianceTemplateSerializer(serializers.ModelSerializer):
    item_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = ComplianceTemplate
        fields = [
            "id",
            "tenant_id",
            "name",
            "description",
            "scope_type",
            "frequency",
            "applies_to_site_types",
            "is_active",
            "item_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ComplianceTemplateDetailSerializer(ComplianceTemplateSerializer):
    items = ComplianceTemplateItemSerializer(many=True, read_only=True)

    class Meta(ComplianceTemplateSerializer.Meta):
        fields = [*ComplianceTemplateSerializer.Meta.fields, "items"]
        read_only_fields = fields


class ComplianceTemplateCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    scope_type = serializers.ChoiceField(choices=ComplianceScopeType.choices)
    frequency = serializers.ChoiceField(choices=ComplianceFrequency.choices)
    applies_to_site_types = serializers.ListField(child=serializers.CharField(max_length=64), required=False, default=list)
    is_active = serializers.BooleanField(required=False, default=True)


class ComplianceTemplateUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    applies_to_site_types = serializers.ListField(child=serializers.CharField(max_length=64), required=False)
    is_active = serializers.BooleanField(required=False)


class ComplianceTemplateItemInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    guidance_text = serializers.CharField(required=False, allow_blank=True)
    response_type = serializers.ChoiceField(choices=ResponseType.choices, required=False)
    is_critical = serializers.BooleanField(required=False)
    default_evidence_required = serializers.BooleanField(required=False)
    evidence_source_type = serializers.ChoiceField(choices=EvidenceSourceType.choices, required=False)
    notes_required_on_fail = serializers.BooleanField(required=False)
    sort_order = serializers.IntegerField(required=False, min_value=0)


class ComplianceResponseSerializer(serializers.ModelSerializer):
    run_id = serializers.UUIDField(read_only=True)
    template_item_id = serializers.UUIDField(read_only=True)
    created_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = ComplianceResponse
        fields = [
            "id",
            "run_id",
            "template_item_id",
            "response_value",
            "notes",
            "attachment_path",
            "created_by_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ComplianceRunSerializer(serializers.ModelSerializer):
    template_id = serializers.UUIDField(read_only=True)
    template_name = serializers.CharField(source="template.name", read_only=True)
    site_id = serializers.UUIDField(read_only=True, allow_null=True)
    participant_id = serializers.UUIDField(read_only=True, allow_null=True)
    created_by_id = serializers.IntegerField(read_only=True, allow_null=True)
    submitted_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = ComplianceRun
        fields = [
            "id",
            "tenant_id",
            "template_id",
            "template_name",
            "scope_type",
            "frequency",
            "site_id",
            "participant_id",
            "scope_entity_id",
            "period_start",
            "period_end",
            "period_date",
            "status",
            "created_by_id",
            "submitted_by_id",
            "submitted_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ComplianceRunDetailSerializer(serializers.Serializer):
    run = ComplianceRunSerializer()
    template = ComplianceTemplateSerializer()
    items = ComplianceTemplateItemSerializer(many=True)
    responses = ComplianceResponseSerializer(many=True)
    status_color = serializers.CharField()


class ComplianceRunCreateSerializer(serializers.Serializer):
    template_id = serializers.UUIDField()
    site_id = serializers.UUIDField(required=False, allow_null=True)
    participant_id = serializers.UUIDField(required=False, allow_null=True)
    date = serializers.DateField(required=False, allow_null=True)
    period_start = serializers.DateField(required=False, allow_null=True)
    period_end = serializers.DateField(required=False, allow_null=True)


class ComplianceRespondSerializer(serializers.Serializer):
    template_item_id = serializers.UUIDField()
    response_value = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    attachment_path = serializers.CharField(max_length=1024, required=False, allow_blank=True, default="")


class ComplianceActionSerializer(serializers.ModelSerializer):
    run_id = serializers.UUIDField(read_only=True)
    template_item_id = serializers.UUIDField(read_only=True, allow_null=True)
    site_id = serializers.UUIDField(read_only=True, allow_null=True)
    participant_id = serializers.UUIDField(read_only=True, allow_null=True)
    assigned_to_user_id = serializers.IntegerField(read_only=True, allow_null=True)
    closed_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = ComplianceAction
        fields = [
            "id",
            "tenant_id",
            "run_id",
            "template_item_id",
            "site_id",
            "participant_id",
            "severity",
            "status",
            "title",
            "description",
            "assigned_to_user_id",
            "due_at",
            "closed_at",
            "closed_by_id",
            "closure_notes",
            "closure_attachment_path",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ComplianceSubmitResultSerializer(serializers.Serializer):
    run = ComplianceRunSerializer()
    status_color = serializers.CharField()
    actions_created = serializers.IntegerField()
    actions = ComplianceActionSerializer(many=True)


class ComplianceActionUpdateSerializer(serializers.Serializer):
    assigned_to_user_id = serializers.IntegerField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=[ActionStatus.OPEN, ActionStatus.IN_PROGRESS], required=False)
    due_at = serializers.DateTimeField(required=False, allow_null=True)


class ComplianceActionCloseSerializer(serializers.Serializer):
    closure_notes = serializers.CharField(allow_blank=True)
    closure_attachment_path = serializers.CharField(max_length=1024, required=False, allow_blank=True, default="")


class ComplianceRollupQuerySerializer(serializers.Serializer):
    frequency = serializers.ChoiceField(choices=ComplianceFrequency.choices, required=False)
    site = serializers.UUIDField(required=False)
    participant = serializers.UUIDField(required=False)
    period_start = serializers.DateField(required=False)
    period_end = serializers.DateField(required=False)

    def validate(self, attrs):
        start, end = attrs.get("period_start"), attrs.get("period_end")
        if start and end and end < start:
            raise serializers.ValidationError({"period_end": "Must be on or after period_start."})
        return attrs


class RunColourCountsSerializer(serializers.Serializer):
    red = serializers.IntegerField()
    amber = serializers.IntegerField()
    green = serializers.IntegerField()
    total = serializers.IntegerField()


class OpenActionCountsSerializer(serializers.Serializer):
    HIGH = serializers.IntegerField()
    MEDIUM = serializers.IntegerField()
    LOW = serializers.IntegerField()


class ComplianceRollupSerializer(serializers.Serializer):
    runs = RunColourCountsSerializer()
    open_actions = OpenActionCountsSerializer()
