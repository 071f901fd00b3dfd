from django.contrib import admin

from ndis_core.audits.models import (
    Audit,
    AuditIndicatorResponse,
    AuditRun,
    AuditTemplate,
    AuditTemplateIndicator,
)


@admin.register(Audit)
class AuditAdmin(admin.ModelAdmin):
    list_display = ("title", "audit_type", "status", "service_context", "scope_locked", "tenant_id", "created_at")
    list_filter = ("status", "audit_type", "service_context")
    search_fields = ("title",)


class AuditTemplateIndicatorInline(admin.TabularInline):
    model = AuditTemplateIndicator
    extra = 0
    fields = ("sort_order", "indicator_text", "risk_level", "is_critical_control")


@admin.register(AuditTemplate)
class AuditTemplateAdmin(admin.ModelAdmin):
    list_display = ("name", "version", "is_active", "tenant_id")
    list_filter = ("is_active",)
    inlines = [AuditTemplateIndicatorInline]

    def save_formset(self, request, form, formset, change):
        # indicators inherit the template tenant
        for obj in formset.save(commit=False):
            obj.tenant_id = form.instance.tenant_id
            obj.save()
        for obj in formset.deleted_objects:
            obj.delete()


@admin.register(AuditRun)
class AuditRunAdmin(admin.ModelAdmin):
    list_display = ("audit", "template", "started_at")


@admin.register(AuditIndicatorResponse)
class AuditIndicatorResponseAdmin(admin.ModelAdmin):
    list_display = ("audit", "indicator", "rating", "score_points", "added_in_review")
    list_filter = ("rating",)
