from django.contrib import admin

from ndis_core.compliance.models import (
    ComplianceAction,
    ComplianceResponse,
    ComplianceRun,
    ComplianceTemplate,
    ComplianceTemplateItem,
)


class ComplianceTemplateItemInline(admin.TabularInline):
    model = ComplianceTemplateItem
    extra = 0
    fields = ("sort_order", "title", "response_type", "is_critical", "notes_required_on_fail")


@admin.register(ComplianceTemplate)
class ComplianceTemplateAdmin(admin.ModelAdmin):
    list_display = ("name", "scope_type", "frequency", "is_active", "tenant_id")
    list_filter = ("scope_type", "frequency", "is_active")
    search_fields = ("name",)
    inlines = [ComplianceTemplateItemInline]

    def save_formset(self, request, form, formset, change):
        instances = formset.save(commit=False)
        for obj in instances:
            obj.tenant_id = form.instance.tenant_id
            obj.save()
        for obj in formset.deleted_objects:
            obj.delete()


class ComplianceResponseInline(admin.TabularInline):
    model = ComplianceResponse
    extra = 0
    can_delete = False
    readonly_fields = ("template_item", "response_value", "notes", "attachment_path", "created_by", "updated_at")
    exclude = ("tenant_id",)

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ComplianceRun)
class ComplianceRunAdmin(admin.ModelAdmin):
    list_display = ("id", "template", "scope_type", "period_date", "status", "tenant_id")
    list_filter = ("status", "frequency", "scope_type")
    date_hierarchy = "period_start"
    readonly_fields = ("period_start", "period_end", "period_date", "scope_entity_id", "submitted_at")
    inlines = [ComplianceResponseInline]


@admin.register(ComplianceAction)
class ComplianceActionAdmin(admin.ModelAdmin):
    list_display = ("title", "severity", "status", "site", "participant", "assigned_to_user", "due_at")
    list_filter = ("severity", "status")
    search_fields = ("title", "description")
