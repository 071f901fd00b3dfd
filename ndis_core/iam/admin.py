# ndis_core/iam/admin.py
from __future__ import annotations

from django.contrib import admin

from ndis_core.iam.models import CompanyMembership


@admin.register(CompanyMembership)
class CompanyMembershipAdmin(admin.ModelAdmin):
    list_display = ("company", "user", "role", "is_active", "created_at")
    list_filter = ("company", "role", "is_active")
    search_fields = ("company__name", "company__code", "user__username", "user__email")
    autocomplete_fields = ("user",)
    ordering = ("company", "user")
