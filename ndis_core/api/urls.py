# ndis_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from ndis_core.audits.api.views import AuditOutcomeViewSet, AuditTemplateViewSet, AuditViewSet
from ndis_core.catalogue.api.views import AuditDomainViewSet, CatalogueViewSet
from ndis_core.changelog.api.views import ChangeLogViewSet
from ndis_core.compliance.api.views import (
    ComplianceActionViewSet,
    ComplianceRunViewSet,
    ComplianceTemplateItemViewSet,
    ComplianceTemplateViewSet,
)
from ndis_core.findings.api.views import EvidenceRequestViewSet, FindingViewSet
from ndis_core.iam.api.auth import LoginView, LogoutView, RefreshView
from ndis_core.iam.api.me import MeView
from ndis_core.reports.api.views import WeeklyReportViewSet
from ndis_core.sites.api.views import (
    ParticipantSiteAssignmentViewSet,
    ParticipantViewSet,
    StaffParticipantAssignmentViewSet,
    StaffSiteAssignmentViewSet,
    WorkSiteViewSet,
)

router = DefaultRouter()

# Catalogue + audits
router.register(r"catalogue", CatalogueViewSet, basename="catalogue")
router.register(r"audit-domains", AuditDomainViewSet, basename="audit-domains")
router.register(r"audits", AuditViewSet, basename="audits")
router.register(r"audit-templates", AuditTemplateViewSet, basename="audit-templates")
router.register(r"audit-outcomes", AuditOutcomeViewSet, basename="audit-outcomes")

# Findings + evidence
router.register(r"findings", FindingViewSet, basename="findings")
router.register(r"evidence/requests", EvidenceRequestViewSet, basename="evidence-requests")

# Sites, participants, staff assignments
router.register(r"work-sites", WorkSiteViewSet, basename="work-sites")
router.register(r"participants", ParticipantViewSet, basename="participants")
router.register(r"staff-site-assignments", StaffSiteAssignmentViewSet, basename="staff-site-assignments")
router.register(
    r"staff-participant-assignments", StaffParticipantAssignmentViewSet, basename="staff-participant-assignments"
)
router.register(
    r"participant-site-assignments", ParticipantSiteAssignmentViewSet, basename="participant-site-assignments"
)

# Periodic compliance
router.register(r"compliance/templates", ComplianceTemplateViewSet, basename="compliance-templates")
router.register(r"compliance/template-items", ComplianceTemplateItemViewSet, basename="compliance-template-items")
router.register(r"compliance/runs", ComplianceRunViewSet, basename="compliance-runs")
router.register(r"compliance/actions", ComplianceActionViewSet, basename="compliance-actions")

# Reporting + change log
router.register(r"weekly-reports", WeeklyReportViewSet, basename="weekly-reports")
router.register(r"changelog", ChangeLogViewSet, basename="changelog")

urlpatterns = [
    # Auth + /me
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", RefreshView.as_view(), name="refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("me/", MeView.as_view(), name="me"),

    path("compliance/rollup/", ComplianceRunViewSet.as_view({"get": "rollup"}), name="compliance-rollup"),

    # Router URLs last (so explicit paths win if ever overlapping)
    *router.urls,
]
