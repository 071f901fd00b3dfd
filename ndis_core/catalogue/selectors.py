# ndis_core/catalogue/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import QuerySet

from ndis_core.catalogue.models import AuditDomain, CompanyServiceSelection, SupportCategory, SupportLineItem

# Known service contexts; any other category label maps to OTHER.
DEFAULT_SERVICE_CONTEXTS = (
    ("SIL", "Supported Independent Living (SIL)"),
    ("COMMUNITY_ACCESS", "Community Access"),
    ("IN_HOME", "In-Home Support"),
    ("CENTRE_BASED", "Centre Based"),
)


def service_context_key_for(label: str) -> str:
    needle = (label or "").strip().lower()
    for key, ctx_label in DEFAULT_SERVICE_CONTEXTS:
        if needle in (key.lower(), ctx_label.lower()):
            return key
    return "OTHER"


def find_service_context_label(label: str) -> str | None:
    """
    Case-insensitive match against catalogue category labels.
    Returns the submitted label when recognised, else None.
    """
    needle = (label or "").strip().lower()
    if not needle:
        return None
    labels = SupportCategory.objects.values_list("category_label", flat=True)
    return label.strip() if any(lbl.lower() == needle for lbl in labels) else None


def active_line_items_qs() -> QuerySet[SupportLineItem]:
    return SupportLineItem.objects.filter(is_active=True).select_related("category")


def selected_line_item_ids(*, tenant_id: UUID) -> set[UUID]:
    return set(CompanyServiceSelection.objects.filter(tenant_id=tenant_id).values_list("line_item_id", flat=True))


def audit_domains_qs(*, tenant_id: UUID) -> QuerySet[AuditDomain]:
    return AuditDomain.objects.filter(tenant_id=tenant_id).order_by("name")


def audit_options(*, tenant_id: UUID) -> dict:
    """
    Service contexts + active line items grouped by category, flagged with the
    company's own selections.
    """
    selected = selected_line_item_ids(tenant_id=tenant_id)
    categories = list(SupportCategory.objects.order_by("sort_order", "category_label"))
    items = list(active_line_items_qs().order_by("sort_order", "item_code"))

    groups = []
    for cat in categories:
        cat_items = [
            {
                "line_item_id": str(li.id),
                "code": li.item_code,
                "label": li.item_label,
                "is_selected": li.id in selected,
            }
            for li in items
            if li.category_id == cat.id
        ]
        if cat_items:
            groups.append(
                {
                    "category_id": str(cat.id),
                    "category_key": cat.category_key,
                    "category_label": cat.category_label,
                    "items": cat_items,
                }
            )

    return {
        "service_contexts": [{"key": c.category_key, "label": c.category_label} for c in categories],
        "line_items_by_category": groups,
        "selected_line_item_count": sum(1 for li in items if li.id in selected),
    }
