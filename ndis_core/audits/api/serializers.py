from rest_framework import serializers

from ndis_core.audits.models import (
    Audit,
    AuditIndicatorResponse,
    AuditScopeDomain,
    AuditScopeLineItem,
    AuditTemplate,
    AuditTemplateIndicator,
    AuditType,
    IndicatorRating,
    RiskLevel,
)


# -------------------------
# Templates
# -------------------------
class AuditTemplateIndicatorSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditTemplateIndicator
        fields = [
            "id",
            "indicator_text",
            "guidance_text",
            "evidence_requirements",
            "risk_level",
            "is_critical_control",
            "sort_order",
        ]
        read_only_fields = fields


class AuditTemplateSerializer(serializers.ModelSerializer):
    indicator_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = AuditTemplate
        fields = ["id", "name", "description", "version", "is_active", "indicator_count", "created_at", "updated_at"]
        read_only_fields = fields


class AuditTemplateDetailSerializer(serializers.ModelSerializer):
    indicators = AuditTemplateIndicatorSerializer(many=True, read_only=True)

    class Meta:
        model = AuditTemplate
        fields = ["id", "name", "description", "version", "is_active", "indicators", "created_at", "updated_at"]
        read_only_fields = fields


class AuditTemplateCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    version = serializers.CharField(max_length=32, required=False, allow_blank=True)


class AuditTemplateIndicatorCreateSerializer(serializers.Serializer):
    indicator_text = serializers.CharField()
    guidance_text = serializers.CharField(required=False, allow_blank=True)
    evidence_requirements = serializers.CharField(required=False, allow_blank=True)
    risk_level = serializers.ChoiceField(choices=RiskLevel.choices, required=False, default=RiskLevel.MEDIUM)
    is_critical_control = serializers.BooleanField(required=False, default=False)
    sort_order = serializers.IntegerField(required=False, default=0)


# -------------------------
# Audits
# -------------------------
class AuditSerializer(serializers.ModelSerializer):
    """
    List row. Progress comes from context["progress"] (AuditSelector.progress_for).
    """
    indicator_count = serializers.SerializerMethodField()
    completed_count = serializers.SerializerMethodField()
    score_percent = serializers.SerializerMethodField()

    class Meta:
        model = Audit
        fields = [
            "id",
            "tenant_id",
            "audit_type",
            "status",
            "title",
            "service_context",
            "service_context_label",
            "scope_locked",
            "scope_time_from",
            "scope_time_to",
            "indicator_count",
            "completed_count",
            "score_percent",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def _progress(self, obj) -> dict:
        return (self.context.get("progress") or {}).get(obj.id) or {}

    def get_indicator_count(self, obj) -> int:
        return self._progress(obj).get("indicator_count", 0)

    def get_completed_count(self, obj) -> int:
        return self._progress(obj).get("completed_count", 0)

    def get_score_percent(self, obj):
        return self._progress(obj).get("score_percent")


class AuditScopeLineItemSerializer(serializers.ModelSerializer):
    line_item_id = serializers.UUIDField(read_only=True)
    item_code = serializers.CharField(source="line_item.item_code", read_only=True)
    item_label = serializers.CharField(source="line_item.item_label", read_only=True)
    category_key = serializers.CharField(source="line_item.category.category_key", read_only=True)

    class Meta:
        model = AuditScopeLineItem
        fields = ["line_item_id", "item_code", "item_label", "category_key"]
        read_only_fields = fields


class AuditScopeDomainSerializer(serializers.ModelSerializer):
    domain_id = serializers.UUIDField(read_only=True)
    code = serializers.CharField(source="domain.code", read_only=True)
    name = serializers.CharField(source="domain.name", read_only=True)

    class Meta:
        model = AuditScopeDomain
        fields = ["domain_id", "code", "name", "is_included"]
        read_only_fields = fields


class AuditDetailSerializer(serializers.ModelSerializer):
    scope_line_items = AuditScopeLineItemSerializer(many=True, read_only=True)
    scope_domains = AuditScopeDomainSerializer(many=True, read_only=True)
    template = serializers.SerializerMethodField()
    created_by_id = serializers.IntegerField(read_only=True, allow_null=True)
    closed_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Audit
        fields = [
            "id",
            "tenant_id",
            "audit_type",
            "status",
            "title",
            "description",
            "service_context",
            "service_context_label",
            "scope_time_from",
            "scope_time_to",
            "scope_locked",
            "external_auditor_name",
            "external_auditor_org",
            "external_auditor_email",
            "created_by_id",
            "close_reason",
            "closed_at",
            "closed_by_id",
            "scope_line_items",
            "scope_domains",
            "template",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_template(self, obj):
        # reverse one-to-one raises (an AttributeError) when no template is selected
        run = getattr(obj, "run", None)
        if run is None:
            return None
        return {
            "id": str(run.template_id),
            "name": run.template.name,
            "version": run.template.version,
            "started_at": run.started_at,
        }


class AuditCreateSerializer(serializers.Serializer):
    audit_type = serializers.ChoiceField(choices=AuditType.choices)
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    service_context_label = serializers.CharField(max_length=255)
    line_item_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=True)
    domain_ids = serializers.ListField(child=serializers.UUIDField(), required=False, allow_empty=True)
    scope_time_from = serializers.DateTimeField(required=False, allow_null=True)
    scope_time_to = serializers.DateTimeField(required=False, allow_null=True)
    external_auditor_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    external_auditor_org = serializers.CharField(max_length=255, required=False, allow_blank=True)
    external_auditor_email = serializers.EmailField(required=False, allow_blank=True)

    def validate(self, attrs):
        start, end = attrs.get("scope_time_from"), attrs.get("scope_time_to")
        if start and end and end < start:
            raise serializers.ValidationError({"scope_time_to": "Must be on or after scope_time_from."})
        return attrs


class AuditScopeUpdateSerializer(serializers.Serializer):
    line_item_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=True)


class AuditDomainsUpdateSerializer(serializers.Serializer):
    domain_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=True)


class AuditTemplateSelectSerializer(serializers.Serializer):
    template_id = serializers.UUIDField()


class AuditCloseSerializer(serializers.Serializer):
    close_reason = serializers.CharField(required=False, allow_blank=True)


# -------------------------
# Responses
# -------------------------
class IndicatorResponseSerializer(serializers.ModelSerializer):
    indicator_id = serializers.UUIDField(read_only=True)
    created_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = AuditIndicatorResponse
        fields = [
            "id",
            "indicator_id",
            "rating",
            "comment",
            "score_points",
            "score_version",
            "added_in_review",
            "created_by_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AuditOutcomeSerializer(IndicatorResponseSerializer):
    audit_id = serializers.UUIDField(read_only=True)
    audit_title = serializers.CharField(source="audit.title", read_only=True)
    audit_status = serializers.CharField(source="audit.status", read_only=True)
    indicator_text = serializers.CharField(source="indicator.indicator_text", read_only=True)
    sort_order = serializers.IntegerField(source="indicator.sort_order", read_only=True)

    class Meta(IndicatorResponseSerializer.Meta):
        fields = [
            *IndicatorResponseSerializer.Meta.fields,
            "audit_id",
            "audit_title",
            "audit_status",
            "indicator_text",
            "sort_order",
        ]
        read_only_fields = fields


class IndicatorResponseInputSerializer(serializers.Serializer):
    rating = serializers.ChoiceField(choices=IndicatorRating.choices)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class InReviewResponseInputSerializer(IndicatorResponseInputSerializer):
    indicator_id = serializers.UUIDField()


class AuditRunnerSerializer(serializers.Serializer):
    audit = AuditSerializer()
    template = AuditTemplateSerializer()
    indicators = AuditTemplateIndicatorSerializer(many=True)
    responses = IndicatorResponseSerializer(many=True)
    scope_line_items = AuditScopeLineItemSerializer(many=True)
    scope_domains = AuditScopeDomainSerializer(many=True)
    progress = serializers.DictField(child=serializers.IntegerField())


class AuditSummarySerializer(serializers.Serializer):
    indicator_count = serializers.IntegerField()
    completed_count = serializers.IntegerField()
    conformance_count = serializers.IntegerField()
    observation_count = serializers.IntegerField()
    minor_nc_count = serializers.IntegerField()
    major_nc_count = serializers.IntegerField()
    score_points_total = serializers.IntegerField()
    score_percent = serializers.IntegerField()
    findings_count = serializers.IntegerField()
