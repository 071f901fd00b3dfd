from django.contrib import admin

from ndis_core.findings.models import EvidenceItem, EvidenceRequest, Finding


@admin.register(Finding)
class FindingAdmin(admin.ModelAdmin):
    list_display = ("id", "audit", "severity", "status", "owner_user", "due_date", "tenant_id")
    list_filter = ("severity", "status")
    search_fields = ("finding_text",)


class EvidenceItemInline(admin.TabularInline):
    model = EvidenceItem
    extra = 0
    can_delete = False
    readonly_fields = ("storage_kind", "file_name", "file_path", "mime_type", "external_url", "uploaded_by", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(EvidenceRequest)
class EvidenceRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "evidence_type", "status", "finding", "audit", "due_date", "tenant_id")
    list_filter = ("status", "evidence_type")
    exclude = ("public_token",)
    inlines = [EvidenceItemInline]
