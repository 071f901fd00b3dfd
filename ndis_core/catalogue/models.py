# ndis_core/catalogue/models.py
import uuid

from django.db import models

from ndis_core.common.models import ScopedModel, TimeStampedModel


class SupportCategory(TimeStampedModel):
    """
    Global NDIS support category. Its label doubles as an audit service context.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    category_key = models.CharField(max_length=64, unique=True)
    category_label = models.CharField(max_length=255)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "catalogue_support_category"
        ordering = ["sort_order", "category_label"]

    def __str__(self) -> str:
        return self.category_label


class SupportLineItem(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    category = models.ForeignKey(SupportCategory, on_delete=models.PROTECT, related_name="line_items")
    item_code = models.CharField(max_length=64)
    item_label = models.CharField(max_length=255)
    budget_group = models.CharField(max_length=128, blank=True, default="")
    is_active = models.BooleanField(default=True, db_index=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "catalogue_support_line_item"
        ordering = ["sort_order", "item_code"]
        constraints = [
            models.UniqueConstraint(fields=["category", "item_code"], name="uq_line_item_category_code"),
        ]

    def __str__(self) -> str:
        return f"{self.item_code} {self.item_label}"


class CompanyServiceSelection(ScopedModel):
    """
    Line items a company says it delivers.
    """
    line_item = models.ForeignKey(SupportLineItem, on_delete=models.PROTECT, related_name="company_selections")

    class Meta:
        db_table = "catalogue_company_service_selection"
        constraints = [
            models.UniqueConstraint(fields=["tenant_id", "line_item"], name="uq_company_service_selection"),
        ]


class AuditDomain(ScopedModel):
    """
    Per-company audit domain (Governance & Policy, Staff & Personnel, ...).
    """
    code = models.CharField(max_length=64)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    is_enabled_by_default = models.BooleanField(default=True)

    class Meta:
        db_table = "catalogue_audit_domain"
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["tenant_id", "code"], name="uq_audit_domain_tenant_code"),
        ]

    def __str__(self) -> str:
        return self.name
