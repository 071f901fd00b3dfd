from django.contrib import admin

from ndis_core.reports.models import AiGenerationLog, WeeklyComplianceReport


@admin.register(WeeklyComplianceReport)
class WeeklyComplianceReportAdmin(admin.ModelAdmin):
    list_display = ("participant", "period_start", "period_end", "report_status", "model_name", "tenant_id")
    list_filter = ("report_status",)
    readonly_fields = ("input_hash", "model_name", "prompt_version", "metrics", "generation_source")


@admin.register(AiGenerationLog)
class AiGenerationLogAdmin(admin.ModelAdmin):
    list_display = ("feature_key", "participant", "period_start", "success", "model_name", "created_at")
    list_filter = ("feature_key", "success")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
