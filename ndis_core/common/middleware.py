# ndis_core/common/middleware.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from ndis_core.common.api.exceptions import build_error_envelope
from ndis_core.iam.scope import INVALID_SCOPE_MSG, MISSING_SCOPE_MSG, NOT_A_MEMBER_MSG, Scope


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class TenantScopeMiddleware(MiddlewareMixin):
    """
    Enforces company scope for session-authenticated API requests.

    Behavior:
      - Enforced for /api/v1/*.
      - The X-Tenant-Id header is required (400 if missing).
      - For /me/: the header is OPTIONAL, but if provided it must be valid and
        the user must be a member.
      - Auth endpoints (login/refresh/logout) never require scope.
      - Docs/schema/admin endpoints: public.
      - Invalid UUID -> 400; not a member -> 403.
      - On success -> attaches request.scope and request.tenant_id

    Token-authenticated requests are resolved later by DRF (authentication +
    permission classes), since request.user is anonymous at this point.
    """

    TENANT_META_KEYS = ("HTTP_X_TENANT_ID", "HTTP_X_COMPANY_ID")

    ENFORCED_PREFIXES = ("/api/v1/",)

    PUBLIC_PATH_PREFIXES = (
        "/admin/",
        "/api/docs/",
        "/api/schema/",
    )

    AUTH_PATH_SUFFIXES = (
        "/auth/login/",
        "/auth/refresh/",
        "/auth/logout/",
    )

    ALLOW_NO_SCOPE_EXACT_PATHS = ("/api/v1/",)

    ALLOW_NO_SCOPE_SUFFIXES = ("/me/",)

    def _starts_with_any(self, path: str, prefixes: tuple[str, ...]) -> bool:
        return any(path.startswith(p) for p in prefixes)

    def _endswith_any(self, path: str, suffixes: tuple[str, ...]) -> bool:
        return any(path.endswith(s) for s in suffixes)

    def _get_meta_first(self, request, keys: tuple[str, ...]) -> Optional[str]:
        for k in keys:
            v = request.META.get(k)
            if v:
                return v
        return None

    def _json_error(self, request, *, status_code: int, code: str, message: str, details=None) -> JsonResponse:
        return JsonResponse(
            build_error_envelope(request=request, code=code, message=message, details=details),
            status=status_code,
        )

    def process_request(self, request):
        request.scope = None
        request.tenant_id = None

        path = getattr(request, "path", "") or ""

        if self._starts_with_any(path, self.PUBLIC_PATH_PREFIXES):
            return None

        if not self._starts_with_any(path, self.ENFORCED_PREFIXES):
            return None

        if path in self.ALLOW_NO_SCOPE_EXACT_PATHS:
            return None

        if self._endswith_any(path, self.AUTH_PATH_SUFFIXES):
            return None

        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return None

        tenant_raw = self._get_meta_first(request, self.TENANT_META_KEYS)

        if not tenant_raw:
            if self._endswith_any(path, self.ALLOW_NO_SCOPE_SUFFIXES):
                return None
            return self._json_error(request, status_code=400, code="validation_error", message=MISSING_SCOPE_MSG)

        tenant_id = _parse_uuid(tenant_raw)
        if not tenant_id:
            return self._json_error(request, status_code=400, code="validation_error", message=INVALID_SCOPE_MSG)

        from ndis_core.iam.services.membership import is_user_member_of_company

        if not is_user_member_of_company(user=user, tenant_id=tenant_id):
            return self._json_error(request, status_code=403, code="permission_denied", message=NOT_A_MEMBER_MSG)

        request.scope = Scope(tenant_id=tenant_id)
        request.tenant_id = tenant_id
        return None
