# ndis_core/findings/selectors.py
from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID

from django.db.models import QuerySet
from rest_framework import exceptions

from ndis_core.common.filters import apply_filterset
from ndis_core.findings.filters import EvidenceRequestFilter, FindingFilter
from ndis_core.findings.models import (
    EvidenceRequest,
    EvidenceStatus,
    Finding,
    FindingSeverity,
    FindingStatus,
)


class FindingSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Finding not found."

    @staticmethod
    def get_finding(*, tenant_id: UUID, finding_id: UUID, for_update: bool = False) -> Finding:
        qs = Finding.objects.select_related("audit", "indicator")
        if for_update:
            qs = qs.select_for_update(of=("self",))
        try:
            return qs.get(id=finding_id, tenant_id=tenant_id)
        except Finding.DoesNotExist:
            raise FindingSelector.NotFound()

    @staticmethod
    def list_findings(*, tenant_id: UUID, params: Optional[Mapping[str, Any]] = None) -> QuerySet[Finding]:
        """
        params: status, severity, audit (query-string shaped).
        """
        qs = Finding.objects.filter(tenant_id=tenant_id).select_related("audit", "indicator")
        return apply_filterset(FindingFilter, params, qs).order_by("-created_at")

    @staticmethod
    def open_major_count(*, tenant_id: UUID, audit_id: UUID) -> int:
        """
        MAJOR_NC findings that are not CLOSED (OPEN or UNDER_REVIEW).
        """
        return (
            Finding.objects.filter(tenant_id=tenant_id, audit_id=audit_id, severity=FindingSeverity.MAJOR_NC)
            .exclude(status=FindingStatus.CLOSED)
            .count()
        )


class EvidenceSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Evidence request not found."

    @staticmethod
    def get_request(*, tenant_id: UUID, request_id: UUID, for_update: bool = False) -> EvidenceRequest:
        qs = EvidenceRequest.objects.select_related("finding", "audit", "template_indicator")
        if for_update:
            qs = qs.select_for_update(of=("self",))
        try:
            return qs.get(id=request_id, tenant_id=tenant_id)
        except EvidenceRequest.DoesNotExist:
            raise EvidenceSelector.NotFound()

    @staticmethod
    def list_requests(
        *,
        tenant_id: UUID,
        params: Optional[Mapping[str, Any]] = None,
        audit_id: Optional[UUID] = None,
        finding_id: Optional[UUID] = None,
    ) -> QuerySet[EvidenceRequest]:
        qs = EvidenceRequest.objects.filter(tenant_id=tenant_id).prefetch_related("items")
        if audit_id:
            qs = qs.filter(audit_id=audit_id)
        if finding_id:
            qs = qs.filter(finding_id=finding_id)
        return apply_filterset(EvidenceRequestFilter, params, qs).order_by("-created_at")

    @staticmethod
    def active_request_for_finding(*, tenant_id: UUID, finding_id: UUID) -> Optional[EvidenceRequest]:
        return (
            EvidenceRequest.objects.filter(tenant_id=tenant_id, finding_id=finding_id)
            .exclude(status=EvidenceStatus.ACCEPTED)
            .first()
        )
