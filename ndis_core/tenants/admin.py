# ndis_core/tenants/admin.py
from django.contrib import admin

from ndis_core.tenants.models import Company


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "abn", "status", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("name", "code", "abn", "ndis_registration_number")
    ordering = ("-created_at",)
    readonly_fields = ("id", "created_at", "updated_at")

    fieldsets = (
        (None, {"fields": ("id", "name", "code", "status")}),
        ("Registration", {"fields": ("abn", "ndis_registration_number", "timezone")}),
        ("Metadata", {"fields": ("metadata",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )
