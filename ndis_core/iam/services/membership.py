# ndis_core/iam/services/membership.py
from __future__ import annotations

from uuid import UUID

from ndis_core.iam.models import CompanyMembership, CompanyRole


def list_user_companies(user_id: int) -> list[dict]:
    """
    Return company memberships for the /me response.
    """
    qs = (
        CompanyMembership.objects.select_related("company")
        .filter(user_id=user_id, is_active=True)
        .order_by("company__name")
    )

    return [
        {
            "tenant_id": str(m.company_id),
            "company_code": m.company.code,
            "company_name": m.company.name,
            "role": m.role,
        }
        for m in qs
    ]


def get_company_role(*, user, tenant_id: UUID) -> str | None:
    """
    Role of the user within the company, or None when not a member.
    Superusers act as CompanyAdmin everywhere.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return None

    if getattr(user, "is_superuser", False):
        return CompanyRole.COMPANY_ADMIN

    return (
        CompanyMembership.objects.filter(
            user_id=user.id,
            company_id=tenant_id,
            is_active=True,
        )
        .values_list("role", flat=True)
        .first()
    )


def is_user_member_of_company(*, user, tenant_id: UUID) -> bool:
    """
    Single source of truth used by scope enforcement.
    """
    return get_company_role(user=user, tenant_id=tenant_id) is not None
