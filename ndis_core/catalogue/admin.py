# ndis_core/catalogue/admin.py
from django.contrib import admin

from ndis_core.catalogue.models import AuditDomain, CompanyServiceSelection, SupportCategory, SupportLineItem


class SupportLineItemInline(admin.TabularInline):
    model = SupportLineItem
    extra = 0


@admin.register(SupportCategory)
class SupportCategoryAdmin(admin.ModelAdmin):
    list_display = ("category_key", "category_label", "sort_order")
    search_fields = ("category_key", "category_label")
    inlines = [SupportLineItemInline]


@admin.register(SupportLineItem)
class SupportLineItemAdmin(admin.ModelAdmin):
    list_display = ("item_code", "item_label", "category", "budget_group", "is_active")
    list_filter = ("category", "is_active")
    search_fields = ("item_code", "item_label")


@admin.register(CompanyServiceSelection)
class CompanyServiceSelectionAdmin(admin.ModelAdmin):
    list_display = ("tenant_id", "line_item", "created_at")
    list_filter = ("tenant_id",)


@admin.register(AuditDomain)
class AuditDomainAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "tenant_id", "is_enabled_by_default")
    list_filter = ("tenant_id", "is_enabled_by_default")
    search_fields = ("code", "name")
