from rest_framework import serializers

from ndis_core.reports.models import ReportStatus, WeeklyComplianceReport


class WeeklyReportSerializer(serializers.ModelSerializer):
    participant_id = serializers.UUIDField(read_only=True)
    participant_name = serializers.CharField(source="participant.full_name", read_only=True)
    generated_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = WeeklyComplianceReport
        fields = [
            "id",
            "tenant_id",
            "participant_id",
            "participant_name",
            "period_start",
            "period_end",
            "generated_by_id",
            "generation_source",
            "report_text",
            "report_status",
            "metrics",
            "input_hash",
            "model_name",
            "prompt_version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class WeeklyReportGenerateSerializer(serializers.Serializer):
    participant_id = serializers.UUIDField()
    period_start = serializers.DateField()
    period_end = serializers.DateField()

    def validate(self, attrs):
        if attrs["period_end"] < attrs["period_start"]:
            raise serializers.ValidationError({"period_end": "Must be on or after period_start."})
        return attrs


class WeeklyReportUpdateSerializer(serializers.Serializer):
    report_text = serializers.CharField(required=False, allow_blank=True)
    report_status = serializers.ChoiceField(choices=ReportStatus.choices, required=False)
