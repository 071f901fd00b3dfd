# ndis_core/audits/selectors.py
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from django.db.models import Count, QuerySet
from rest_framework import exceptions

from ndis_core.audits.models import (
    Audit,
    AuditIndicatorResponse,
    AuditRun,
    AuditScopeDomain,
    AuditScopeLineItem,
    AuditTemplate,
    AuditTemplateIndicator,
    IndicatorRating,
)
from ndis_core.audits.scoring import score_percent


class AuditSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Audit not found."

    @staticmethod
    def get_audit(*, tenant_id: UUID, audit_id: UUID, for_update: bool = False) -> Audit:
        qs = Audit.objects.all()
        if for_update:
            qs = qs.select_for_update()
        try:
            return qs.get(id=audit_id, tenant_id=tenant_id)
        except Audit.DoesNotExist:
            raise AuditSelector.NotFound()

    @staticmethod
    def get_run_or_none(*, audit: Audit) -> Optional[AuditRun]:
        return AuditRun.objects.select_related("template").filter(audit=audit).first()

    @staticmethod
    def list_audits(*, tenant_id: UUID, status: Optional[str] = None, audit_type: Optional[str] = None) -> QuerySet[Audit]:
        qs = Audit.objects.filter(tenant_id=tenant_id)
        if status:
            qs = qs.filter(status=status)
        if audit_type:
            qs = qs.filter(audit_type=audit_type)
        return qs.order_by("-created_at")

    @staticmethod
    def list_outcomes(
        *,
        tenant_id: UUID,
        rating: Optional[str] = None,
        audit_id: Optional[UUID] = None,
    ) -> QuerySet[AuditIndicatorResponse]:
        """
        Indicator responses across the company's audits, newest first.
        An unknown audit is a 404 rather than an empty list.
        """
        qs = AuditIndicatorResponse.objects.filter(audit__tenant_id=tenant_id).select_related("audit", "indicator")
        if rating:
            if rating not in IndicatorRating.values:
                raise exceptions.ValidationError({"rating": "Invalid rating."})
            qs = qs.filter(rating=rating)
        if audit_id:
            audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id)
            qs = qs.filter(audit=audit)
        return qs.order_by("-created_at")

    @staticmethod
    def progress_for(audits: list[Audit]) -> dict[UUID, dict[str, Any]]:
        """
        {audit_id: {indicator_count, completed_count, score_percent}} for a page of audits.
        score_percent is None when no template is selected.
        """
        ids = [a.id for a in audits]
        runs = {r.audit_id: r.template_id for r in AuditRun.objects.filter(audit_id__in=ids)}

        indicator_counts = dict(
            AuditTemplateIndicator.objects.filter(template_id__in=set(runs.values()))
            .values("template_id")
            .annotate(n=Count("id"))
            .values_list("template_id", "n")
        )

        points: dict[UUID, list[int]] = {}
        for audit_id, pts in AuditIndicatorResponse.objects.filter(audit_id__in=ids).values_list("audit_id", "score_points"):
            points.setdefault(audit_id, []).append(pts)

        out: dict[UUID, dict[str, Any]] = {}
        for audit in audits:
            template_id = runs.get(audit.id)
            if template_id is None:
                out[audit.id] = {"indicator_count": 0, "completed_count": 0, "score_percent": None}
                continue
            n = indicator_counts.get(template_id, 0)
            audit_points = points.get(audit.id, [])
            out[audit.id] = {
                "indicator_count": n,
                "completed_count": len(audit_points),
                "score_percent": score_percent(audit_points, n),
            }
        return out

    @staticmethod
    def scope_line_items(*, audit: Audit) -> QuerySet[AuditScopeLineItem]:
        return AuditScopeLineItem.objects.filter(audit=audit).select_related("line_item", "line_item__category")

    @staticmethod
    def scope_domains(*, audit: Audit) -> QuerySet[AuditScopeDomain]:
        return AuditScopeDomain.objects.filter(audit=audit).select_related("domain").order_by("domain__name")

    @staticmethod
    def runner(*, tenant_id: UUID, audit_id: UUID) -> dict[str, Any]:
        audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id)
        run = AuditSelector.get_run_or_none(audit=audit)
        if run is None:
            raise exceptions.ValidationError({"detail": "No template selected for this audit."})

        indicators = list(run.template.indicators.order_by("sort_order", "created_at"))
        responses = list(AuditIndicatorResponse.objects.filter(audit=audit).order_by("created_at"))

        return {
            "audit": audit,
            "template": run.template,
            "indicators": indicators,
            "responses": responses,
            "scope_line_items": list(AuditSelector.scope_line_items(audit=audit)),
            "scope_domains": list(AuditSelector.scope_domains(audit=audit)),
            "progress": {"total": len(indicators), "completed": len(responses)},
        }

    @staticmethod
    def summary(*, tenant_id: UUID, audit_id: UUID) -> dict[str, Any]:
        from ndis_core.findings.models import Finding

        audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id)
        run = AuditSelector.get_run_or_none(audit=audit)

        counts = {rating: 0 for rating in IndicatorRating.values}
        points: list[int] = []
        indicator_count = 0

        if run is not None:
            indicator_count = run.template.indicators.count()
            for rating, pts in AuditIndicatorResponse.objects.filter(audit=audit).values_list("rating", "score_points"):
                counts[rating] = counts.get(rating, 0) + 1
                points.append(pts)

        return {
            "indicator_count": indicator_count,
            "completed_count": len(points),
            "conformance_count": counts[IndicatorRating.CONFORMANCE],
            "observation_count": counts[IndicatorRating.OBSERVATION],
            "minor_nc_count": counts[IndicatorRating.MINOR_NC],
            "major_nc_count": counts[IndicatorRating.MAJOR_NC],
            "score_points_total": sum(points),
            "score_percent": score_percent(points, indicator_count) or 0,
            "findings_count": Finding.objects.filter(tenant_id=tenant_id, audit=audit).count(),
        }


class AuditTemplateSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Template not found."

    @staticmethod
    def get_template(*, tenant_id: UUID, template_id: UUID) -> AuditTemplate:
        try:
            return AuditTemplate.objects.get(id=template_id, tenant_id=tenant_id)
        except AuditTemplate.DoesNotExist:
            raise AuditTemplateSelector.NotFound()

    @staticmethod
    def list_templates(*, tenant_id: UUID) -> QuerySet[AuditTemplate]:
        return (
            AuditTemplate.objects.filter(tenant_id=tenant_id)
            .annotate(indicator_count=Count("indicators"))
            .order_by("name")
        )

    @staticmethod
    def get_indicator_in_template(*, template_id: UUID, indicator_id: UUID) -> AuditTemplateIndicator:
        try:
            return AuditTemplateIndicator.objects.get(id=indicator_id, template_id=template_id)
        except AuditTemplateIndicator.DoesNotExist:
            raise exceptions.NotFound("Indicator not found.")
