# ndis_core/common/scope.py
from __future__ import annotations

from uuid import UUID

from rest_framework.exceptions import ValidationError

# Canonical messages live in iam.scope (single source of truth)
from ndis_core.iam.scope import MISSING_SCOPE_MSG, Scope, read_tenant_header, resolve_scope_from_headers


def require_scope(request) -> Scope:
    """
    Returns the request's company scope or raises 400.

    Prefers values attached by middleware/permissions; falls back to headers so
    views still work when middleware is bypassed (APIClient.force_authenticate).
    Does NOT check membership; that is enforced by the permission layer.
    """
    existing = getattr(request, "scope", None)
    if isinstance(existing, Scope):
        return existing

    tenant_id = getattr(request, "tenant_id", None)
    if tenant_id:
        scope = Scope(tenant_id=UUID(str(tenant_id)))
    else:
        if not read_tenant_header(request):
            raise ValidationError({"detail": MISSING_SCOPE_MSG})
        scope = resolve_scope_from_headers(request)

    request.tenant_id = scope.tenant_id
    request.scope = scope
    return scope
