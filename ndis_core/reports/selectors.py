# ndis_core/reports/selectors.py
from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Any, Mapping, Optional
from uuid import UUID

from django.db.models import QuerySet
from rest_framework import exceptions

from ndis_core.common.filters import apply_filterset
from ndis_core.compliance.models import (
    ComplianceAction,
    ComplianceResponse,
    ComplianceRun,
    ComplianceTemplateItem,
    RunStatus,
)
from ndis_core.compliance.periods import day_bounds
from ndis_core.reports.filters import WeeklyReportFilter
from ndis_core.reports.metrics import RunData
from ndis_core.reports.models import WeeklyComplianceReport


class WeeklyReportSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Report not found."

    @staticmethod
    def get_report(*, tenant_id: UUID, report_id: UUID) -> WeeklyComplianceReport:
        try:
            return WeeklyComplianceReport.objects.select_related("participant").get(id=report_id, tenant_id=tenant_id)
        except WeeklyComplianceReport.DoesNotExist:
            raise WeeklyReportSelector.NotFound()

    @staticmethod
    def list_reports(*, tenant_id: UUID, params: Optional[Mapping[str, Any]] = None) -> QuerySet[WeeklyComplianceReport]:
        qs = WeeklyComplianceReport.objects.filter(tenant_id=tenant_id).select_related("participant")
        return apply_filterset(WeeklyReportFilter, params, qs).order_by("-period_start", "-created_at")


def participant_period_runs(
    *, tenant_id: UUID, participant_id: UUID, period_start: date, period_end: date
) -> list[RunData]:
    """
    Completed (submitted / locked) runs for the participant whose period starts
    inside [period_start, period_end], with items and responses attached.
    """
    runs = list(
        ComplianceRun.objects.filter(
            tenant_id=tenant_id,
            participant_id=participant_id,
            status__in=[RunStatus.SUBMITTED, RunStatus.LOCKED],
            period_start__gte=day_bounds(period_start)[0],
            period_start__lte=day_bounds(period_end)[1],
        )
        .select_related("template")
        .order_by("period_start", "created_at")
    )

    items_by_template: dict[UUID, list[ComplianceTemplateItem]] = defaultdict(list)
    for item in ComplianceTemplateItem.objects.filter(template_id__in={r.template_id for r in runs}).order_by(
        "sort_order", "created_at"
    ):
        items_by_template[item.template_id].append(item)

    responses_by_run: dict[UUID, dict[UUID, ComplianceResponse]] = defaultdict(dict)
    for response in ComplianceResponse.objects.filter(run_id__in=[r.id for r in runs]):
        responses_by_run[response.run_id][response.template_item_id] = response

    return [
        RunData(run=run, items=items_by_template[run.template_id], responses=responses_by_run[run.id]) for run in runs
    ]


def actions_for_runs(*, runs: list[ComplianceRun]) -> list[ComplianceAction]:
    return list(ComplianceAction.objects.filter(run__in=runs).order_by("created_at"))
