# ndis_core/iam/scope.py
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from rest_framework.exceptions import PermissionDenied, ValidationError

from ndis_core.iam.services.membership import is_user_member_of_company


@dataclass(frozen=True)
class Scope:
    tenant_id: UUID


# Preferred header name (what we standardize on)
HDR_TENANT = "X-Tenant-Id"

# Legacy variant (kept for compatibility)
HDR_TENANT_LEGACY = "X-Company-Id"

MISSING_SCOPE_MSG = "Missing scope header. Provide X-Tenant-Id."
INVALID_SCOPE_MSG = "Invalid scope header. Provide a valid UUID for X-Tenant-Id."
NOT_A_MEMBER_MSG = "You do not have access to the selected company."


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError({"detail": INVALID_SCOPE_MSG})


def _get_header(request, name: str) -> str | None:
    """
    request.headers is case-insensitive; fallback to META for RequestFactory/pytest.
    """
    headers = getattr(request, "headers", None)
    if headers is not None:
        v = headers.get(name)
        if v:
            return v
    meta_key = "HTTP_" + name.upper().replace("-", "_")
    return request.META.get(meta_key)


def read_tenant_header(request) -> str | None:
    return _get_header(request, HDR_TENANT) or _get_header(request, HDR_TENANT_LEGACY)


def resolve_scope_from_headers(request) -> Scope | None:
    """
    Reads the scope header.
    - If absent: returns None.
    - If present but not a UUID: raises 400 ValidationError.
    """
    raw = read_tenant_header(request)
    if not raw:
        return None
    return Scope(tenant_id=_parse_uuid(raw))


def assert_user_membership(user, scope: Scope) -> None:
    """
    Ensures user is an active member of the company. Raises 403 if not.
    """
    if not user or not getattr(user, "is_authenticated", False):
        raise PermissionDenied("Authentication required to set scope.")

    if not is_user_member_of_company(user=user, tenant_id=scope.tenant_id):
        raise PermissionDenied(NOT_A_MEMBER_MSG)


def apply_scope_from_headers(request, user=None) -> Scope | None:
    """
    Used by the auth layer (CookieOrHeaderJWTAuthentication).

    If the scope header is present:
      - validates it is a UUID
      - verifies user membership
      - sets request.tenant_id and request.scope

    If no header: returns None and does nothing.
    """
    scope = resolve_scope_from_headers(request)
    if scope is None:
        return None

    u = user or getattr(request, "user", None)
    assert_user_membership(u, scope)

    request.tenant_id = scope.tenant_id
    request.scope = scope
    return scope
