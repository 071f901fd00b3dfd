# ndis_core/changelog/admin.py
from django.contrib import admin

from ndis_core.changelog.models import ChangeLogEntry


@admin.register(ChangeLogEntry)
class ChangeLogEntryAdmin(admin.ModelAdmin):
    list_display = ("action", "entity_type", "entity_id", "tenant_id", "actor_user", "occurred_at")
    list_filter = ("tenant_id", "action", "entity_type")
    search_fields = ("action", "entity_type", "entity_id")
    readonly_fields = ("occurred_at",)
    ordering = ("-occurred_at",)
