# ndis_core/compliance/selectors.py
from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Any, Mapping, Optional
from uuid import UUID

from django.db.models import Count, QuerySet
from rest_framework import exceptions

from ndis_core.common.filters import apply_filterset
from ndis_core.compliance.filters import ComplianceActionFilter, ComplianceRunFilter, ComplianceTemplateFilter
from ndis_core.compliance.models import (
    ActionSeverity,
    ActionStatus,
    ComplianceAction,
    ComplianceResponse,
    ComplianceRun,
    ComplianceTemplate,
    ComplianceTemplateItem,
    RunStatus,
)
from ndis_core.compliance.periods import day_bounds
from ndis_core.compliance.status import AMBER, GREEN, RED, status_color


class ComplianceTemplateSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Template not found."

    class ItemNotFound(exceptions.NotFound):
        default_detail = "Template item not found."

    @staticmethod
    def get_template(*, tenant_id: UUID, template_id: UUID) -> ComplianceTemplate:
        try:
            return ComplianceTemplate.objects.get(id=template_id, tenant_id=tenant_id)
        except ComplianceTemplate.DoesNotExist:
            raise ComplianceTemplateSelector.NotFound()

    @staticmethod
    def list_templates(*, tenant_id: UUID, params: Optional[Mapping[str, Any]] = None) -> QuerySet[ComplianceTemplate]:
        qs = ComplianceTemplate.objects.filter(tenant_id=tenant_id).annotate(item_count=Count("items"))
        return apply_filterset(ComplianceTemplateFilter, params, qs).order_by("name")

    @staticmethod
    def get_item(*, tenant_id: UUID, item_id: UUID) -> ComplianceTemplateItem:
        try:
            return ComplianceTemplateItem.objects.select_related("template").get(id=item_id, tenant_id=tenant_id)
        except ComplianceTemplateItem.DoesNotExist:
            raise ComplianceTemplateSelector.ItemNotFound()

    @staticmethod
    def list_items(*, template: ComplianceTemplate) -> QuerySet[ComplianceTemplateItem]:
        return ComplianceTemplateItem.objects.filter(template=template).order_by("sort_order", "created_at")


class ComplianceRunSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Compliance run not found."

    @staticmethod
    def get_run(*, tenant_id: UUID, run_id: UUID, for_update: bool = False) -> ComplianceRun:
        qs = ComplianceRun.objects.select_related("template")
        if for_update:
            qs = qs.select_for_update(of=("self",))
        try:
            return qs.get(id=run_id, tenant_id=tenant_id)
        except ComplianceRun.DoesNotExist:
            raise ComplianceRunSelector.NotFound()

    @staticmethod
    def list_runs(*, tenant_id: UUID, params: Optional[Mapping[str, Any]] = None) -> QuerySet[ComplianceRun]:
        qs = ComplianceRun.objects.filter(tenant_id=tenant_id).select_related("template", "site", "participant")
        return apply_filterset(ComplianceRunFilter, params, qs).order_by("-period_start", "-created_at")

    @staticmethod
    def responses_by_item(*, run: ComplianceRun) -> dict[UUID, ComplianceResponse]:
        return {r.template_item_id: r for r in ComplianceResponse.objects.filter(run=run)}

    @staticmethod
    def detail(*, tenant_id: UUID, run_id: UUID) -> dict[str, Any]:
        """
        Run + template + items + responses + the colour derived from them right now.
        """
        run = ComplianceRunSelector.get_run(tenant_id=tenant_id, run_id=run_id)
        items = list(ComplianceTemplateSelector.list_items(template=run.template))
        responses = ComplianceRunSelector.responses_by_item(run=run)
        return {
            "run": run,
            "template": run.template,
            "items": items,
            "responses": list(responses.values()),
            "status_color": status_color(items, responses),
        }


class ComplianceActionSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Action not found."

    @staticmethod
    def get_action(*, tenant_id: UUID, action_id: UUID, for_update: bool = False) -> ComplianceAction:
        qs = ComplianceAction.objects.all()
        if for_update:
            qs = qs.select_for_update()
        try:
            return qs.get(id=action_id, tenant_id=tenant_id)
        except ComplianceAction.DoesNotExist:
            raise ComplianceActionSelector.NotFound()

    @staticmethod
    def list_actions(*, tenant_id: UUID, params: Optional[Mapping[str, Any]] = None) -> QuerySet[ComplianceAction]:
        qs = ComplianceAction.objects.filter(tenant_id=tenant_id).select_related("run", "site", "participant")
        return apply_filterset(ComplianceActionFilter, params, qs).order_by("-created_at")


def compliance_rollup(
    *,
    tenant_id: UUID,
    frequency: Optional[str] = None,
    site_id: Optional[UUID] = None,
    participant_id: Optional[UUID] = None,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
) -> dict[str, Any]:
    """
    Red / amber / green counts for submitted runs, plus open actions by severity.

    Colours are re-derived from the current template items and responses on
    every call; nothing is cached, so identical data gives identical counts.
    """
    runs = ComplianceRun.objects.filter(tenant_id=tenant_id)
    if frequency:
        runs = runs.filter(frequency=frequency)
    if site_id:
        runs = runs.filter(site_id=site_id)
    if participant_id:
        runs = runs.filter(participant_id=participant_id)
    if period_start:
        runs = runs.filter(period_start__gte=day_bounds(period_start)[0])
    if period_end:
        runs = runs.filter(period_start__lte=day_bounds(period_end)[1])

    finished = list(runs.filter(status__in=[RunStatus.SUBMITTED, RunStatus.LOCKED]).order_by("id"))

    items_by_template: dict[UUID, list[ComplianceTemplateItem]] = defaultdict(list)
    for item in ComplianceTemplateItem.objects.filter(template_id__in={r.template_id for r in finished}):
        items_by_template[item.template_id].append(item)

    responses_by_run: dict[UUID, dict[UUID, ComplianceResponse]] = defaultdict(dict)
    for response in ComplianceResponse.objects.filter(run_id__in=[r.id for r in finished]):
        responses_by_run[response.run_id][response.template_item_id] = response

    colours = {RED: 0, AMBER: 0, GREEN: 0}
    for run in finished:
        colours[status_color(items_by_template[run.template_id], responses_by_run[run.id])] += 1

    open_actions = {severity: 0 for severity in ActionSeverity.values}
    counts = (
        ComplianceAction.objects.filter(tenant_id=tenant_id, run__in=runs, status=ActionStatus.OPEN)
        .values("severity")
        .annotate(n=Count("id"))
    )
    for row in counts:
        open_actions[row["severity"]] = row["n"]

    return {
        "runs": {**colours, "total": len(finished)},
        "open_actions": open_actions,
    }
