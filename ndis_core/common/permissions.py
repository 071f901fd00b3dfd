# ndis_core/common/permissions.py

from __future__ import annotations

from uuid import UUID

from rest_framework.permissions import BasePermission, SAFE_METHODS

from ndis_core.iam.models import CompanyRole
from ndis_core.iam.scope import read_tenant_header
from ndis_core.iam.services.membership import get_company_role

ROLE_ADMIN = CompanyRole.COMPANY_ADMIN.value
ROLE_AUDITOR = CompanyRole.AUDITOR.value
ROLE_REVIEWER = CompanyRole.REVIEWER.value
ROLE_STAFF = CompanyRole.STAFF_READ_ONLY.value

ALL_ROLES = frozenset({ROLE_ADMIN, ROLE_AUDITOR, ROLE_REVIEWER, ROLE_STAFF})
AUDIT_ROLES = frozenset({ROLE_ADMIN, ROLE_AUDITOR})
REVIEW_ROLES = frozenset({ROLE_ADMIN, ROLE_REVIEWER})
ASSURANCE_ROLES = frozenset({ROLE_ADMIN, ROLE_AUDITOR, ROLE_REVIEWER})
ADMIN_ONLY = frozenset({ROLE_ADMIN})


# -----------------------------
# Scope helpers
# -----------------------------

def ensure_scope_on_request(request) -> bool:
    """
    Ensure request.tenant_id exists.

    IMPORTANT:
    - Permissions must not raise ValidationError (it becomes 400).
    - Return False when missing/invalid -> DRF returns 403.
    """
    if getattr(request, "tenant_id", None):
        return True

    raw = read_tenant_header(request)
    if not raw:
        return False

    try:
        tenant_uuid = UUID(str(raw))
    except (TypeError, ValueError):
        return False

    setattr(request, "tenant_id", tenant_uuid)
    return True


def request_role(request) -> str | None:
    """
    The caller's role in the request's company (cached on the request).
    """
    cached = getattr(request, "company_role", None)
    if cached:
        return cached

    tenant_id = getattr(request, "tenant_id", None)
    if not tenant_id:
        return None

    role = get_company_role(user=getattr(request, "user", None), tenant_id=tenant_id)
    setattr(request, "company_role", role)
    return role


class BaseRolePermission(BasePermission):
    """
    Base permission class for role-based access control.

    - Requires authentication and the company scope header.
    - The role comes from the user's CompanyMembership for that company;
      no membership means no access.
    - CompanyAdmin bypass.
    - Uses allowed_roles_per_action for strict RBAC.
    - Unknown SAFE actions fall back to list/retrieve instead of denying.
    """
    message = "You do not have permission to perform this action."

    # Override in subclasses: dict of action -> set of allowed roles
    allowed_roles_per_action: dict[str, frozenset] = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "create": ADMIN_ONLY,
        "update": ADMIN_ONLY,
        "partial_update": ADMIN_ONLY,
        "destroy": ADMIN_ONLY,
    }

    def _infer_action(self, request, view) -> str | None:
        action = getattr(view, "action", None)
        if action:
            return action

        kwargs = getattr(view, "kwargs", {}) or {}
        is_detail = "pk" in kwargs or "id" in kwargs

        method = request.method.upper()
        if method in ("GET", "HEAD", "OPTIONS"):
            return "retrieve" if is_detail else "list"
        if method == "POST":
            return "create"
        if method == "PUT":
            return "update"
        if method == "PATCH":
            return "partial_update"
        if method == "DELETE":
            return "destroy"
        return None

    def has_permission(self, request, view) -> bool:
        if not ensure_scope_on_request(request):
            return False

        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        role = request_role(request)
        if role is None:
            self.message = "You do not have access to the selected company."
            return False

        if role == ROLE_ADMIN:
            return True

        action = self._infer_action(request, view)
        allowed = self.allowed_roles_per_action.get(action)

        if allowed is None and request.method in SAFE_METHODS:
            kwargs = getattr(view, "kwargs", {}) or {}
            is_detail = "pk" in kwargs or "id" in kwargs
            allowed = self.allowed_roles_per_action.get("retrieve" if is_detail else "list")

        if allowed is not None:
            return role in allowed

        # Unknown action => deny by default
        return False

    def has_object_permission(self, request, view, obj) -> bool:
        return self.has_permission(request, view)


# Specific permission classes for each module

class CataloguePermission(BaseRolePermission):
    """Catalogue options, audit domains, service selections"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "catalogue_options": ALL_ROLES,
        "service_selections": ALL_ROLES,
        "replace_service_selections": ADMIN_ONLY,
    }


class AuditPermission(BaseRolePermission):
    """Audit lifecycle"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "runner": ALL_ROLES,
        "summary": ALL_ROLES,
        "create": AUDIT_ROLES,
        "scope": AUDIT_ROLES,
        "domains": ALL_ROLES,
        "update_domains": AUDIT_ROLES,
        "template": AUDIT_ROLES,
        "start": AUDIT_ROLES,
        "submit": AUDIT_ROLES,
        "responses": AUDIT_ROLES,
        "in_review_responses": REVIEW_ROLES,
        "close": REVIEW_ROLES,
        "evidence_requests": ALL_ROLES,
        "create_evidence_request": ASSURANCE_ROLES,
    }


class AuditOutcomePermission(BaseRolePermission):
    """Tenant-wide indicator outcomes (read only)"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
    }


class AuditTemplatePermission(BaseRolePermission):
    """Audit templates + indicators"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "create": AUDIT_ROLES,
        "indicators": AUDIT_ROLES,
    }


class FindingPermission(BaseRolePermission):
    """Findings (manual CLOSED additionally needs Admin/Reviewer, checked in the service)"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "evidence": ALL_ROLES,
        "partial_update": ALL_ROLES,
        "request_evidence": ASSURANCE_ROLES,
    }


class EvidencePermission(BaseRolePermission):
    """Evidence requests"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "create": ASSURANCE_ROLES,
        "submit": ALL_ROLES,
        "start_review": ASSURANCE_ROLES,
        "review": ASSURANCE_ROLES,
    }


class SitePermission(BaseRolePermission):
    """Work sites + participants (StaffReadOnly sees assigned rows only)"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "create": AUDIT_ROLES,
        "update": AUDIT_ROLES,
        "partial_update": AUDIT_ROLES,
        "destroy": AUDIT_ROLES,
    }


class StaffAssignmentPermission(BaseRolePermission):
    """Staff site / participant assignments"""
    allowed_roles_per_action = {
        "list": ADMIN_ONLY,
        "retrieve": ADMIN_ONLY,
        "create": ADMIN_ONLY,
        "destroy": ADMIN_ONLY,
    }


class ParticipantSiteAssignmentPermission(BaseRolePermission):
    """Participant placements at sites"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "create": AUDIT_ROLES,
        "destroy": AUDIT_ROLES,
    }


class ComplianceTemplatePermission(BaseRolePermission):
    """Compliance templates + items"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "create": AUDIT_ROLES,
        "update": AUDIT_ROLES,
        "partial_update": AUDIT_ROLES,
        "destroy": AUDIT_ROLES,
        "items": ALL_ROLES,
        "add_item": AUDIT_ROLES,
    }


class ComplianceRunPermission(BaseRolePermission):
    """Compliance runs (StaffReadOnly limited to assigned sites/participants in the service)"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "create": ALL_ROLES,
        "respond": ALL_ROLES,
        "submit": ALL_ROLES,
        "rollup": ALL_ROLES,
    }


class ComplianceActionPermission(BaseRolePermission):
    """Compliance actions (StaffReadOnly limited to assigned actions in the service)"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "partial_update": ALL_ROLES,
        "close": ALL_ROLES,
    }


class WeeklyReportPermission(BaseRolePermission):
    """Weekly narrative reports"""
    allowed_roles_per_action = {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "generate": AUDIT_ROLES,
        "partial_update": AUDIT_ROLES,
    }


class ChangeLogPermission(BaseRolePermission):
    """Change log access"""
    allowed_roles_per_action = {
        "list": ADMIN_ONLY,
    }
