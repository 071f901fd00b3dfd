# ndis_core/reports/services.py
from __future__ import annotations

import hashlib
import json
import logging
from datetime import date
from typing import Any
from uuid import UUID

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from rest_framework.exceptions import ValidationError

from ndis_core.changelog.services import ChangeLogService, snapshot
from ndis_core.common.api.exceptions import ExternalServiceError
from ndis_core.reports.generation import GenerationError, get_generator
from ndis_core.reports.metrics import compute_metrics, run_summary
from ndis_core.reports.models import (
    FEATURE_WEEKLY_COMPLIANCE_REPORT,
    AiGenerationLog,
    GenerationSource,
    ReportStatus,
    WeeklyComplianceReport,
)
from ndis_core.reports.prompts import SYSTEM_PROMPT, WEEKLY_REPORT_PROMPT_VERSION, build_user_prompt
from ndis_core.reports.selectors import WeeklyReportSelector, actions_for_runs, participant_period_runs
from ndis_core.sites.selectors import ParticipantSelector

logger = logging.getLogger(__name__)

REPORT_UPDATE_FIELDS = ("report_text", "report_status")


def input_hash(report_input: dict[str, Any]) -> str:
    """sha256 of the canonical (sorted-key, compact) JSON form."""
    canonical = json.dumps(report_input, sort_keys=True, separators=(",", ":"), cls=DjangoJSONEncoder)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def build_report_input(*, tenant_id: UUID, participant, period_start: date, period_end: date) -> dict[str, Any]:
    run_data = participant_period_runs(
        tenant_id=tenant_id,
        participant_id=participant.id,
        period_start=period_start,
        period_end=period_end,
    )
    if not run_data:
        raise ValidationError({"detail": "No compliance runs found for the specified period."})

    actions = actions_for_runs(runs=[rd.run for rd in run_data])
    return {
        "participant_name": participant.full_name,
        "period_start": period_start.isoformat(),
        "period_end": period_end.isoformat(),
        "metrics": compute_metrics(run_data, actions),
        "run_summaries": [run_summary(rd) for rd in run_data],
        "actions": [
            {
                "title": a.title,
                "severity": a.severity,
                "status": a.status,
                "created_at": a.created_at.date().isoformat(),
            }
            for a in actions
        ],
    }


class WeeklyReportService:
    @staticmethod
    def generate_weekly_report(
        *,
        tenant_id: UUID,
        participant_id: UUID,
        period_start: date,
        period_end: date,
        actor_user_id: int | None,
    ) -> WeeklyComplianceReport:
        """
        Not atomic as a whole: the provider call happens outside any transaction
        so the failure log row is committed even though the request fails.
        """
        if period_end < period_start:
            raise ValidationError({"period_end": "Must be on or after period_start."})

        participant = ParticipantSelector.get_participant(tenant_id=tenant_id, participant_id=participant_id)
        report_input = build_report_input(
            tenant_id=tenant_id,
            participant=participant,
            period_start=period_start,
            period_end=period_end,
        )
        digest = input_hash(report_input)

        generator = get_generator()
        log = AiGenerationLog(
            tenant_id=tenant_id,
            feature_key=FEATURE_WEEKLY_COMPLIANCE_REPORT,
            participant=participant,
            period_start=period_start,
            period_end=period_end,
            input_hash=digest,
            model_name=generator.model,
            prompt_version=WEEKLY_REPORT_PROMPT_VERSION,
            user_id=actor_user_id,
        )

        try:
            result = generator.generate(system_prompt=SYSTEM_PROMPT, user_prompt=build_user_prompt(report_input))
        except GenerationError as exc:
            log.success = False
            log.error_message = str(exc) or "Text generation failed"
            log.save()
            logger.error(
                "Weekly report generation failed tenant=%s participant=%s log=%s",
                tenant_id,
                participant.id,
                log.id,
                exc_info=True,
            )
            raise ExternalServiceError("Report generation failed. Please try again later.")

        with transaction.atomic():
            log.success = True
            log.model_name = result.model
            log.save()

            report = WeeklyComplianceReport.objects.create(
                tenant_id=tenant_id,
                participant=participant,
                period_start=period_start,
                period_end=period_end,
                generated_by_id=actor_user_id,
                generation_source=GenerationSource.AI,
                report_text=result.text,
                report_status=ReportStatus.DRAFT,
                metrics=report_input["metrics"],
                input_hash=digest,
                model_name=result.model,
                prompt_version=WEEKLY_REPORT_PROMPT_VERSION,
            )
            ChangeLogService.log(
                action="WEEKLY_REPORT_GENERATED",
                entity_type="weekly_compliance_report",
                entity_id=report.id,
                tenant_id=tenant_id,
                actor_user_id=actor_user_id,
                after={
                    "participant_id": str(participant.id),
                    "period_start": period_start.isoformat(),
                    "period_end": period_end.isoformat(),
                    "input_hash": digest,
                    "model_name": result.model,
                },
            )

        logger.info("Weekly report generated id=%s tenant=%s participant=%s", report.id, tenant_id, participant.id)
        return report

    @staticmethod
    @transaction.atomic
    def update_report(
        *,
        tenant_id: UUID,
        report_id: UUID,
        changes: dict[str, Any],
        actor_user_id: int | None,
    ) -> WeeklyComplianceReport:
        report = WeeklyReportSelector.get_report(tenant_id=tenant_id, report_id=report_id)
        before = snapshot(report, REPORT_UPDATE_FIELDS)

        update_fields = []
        for name in REPORT_UPDATE_FIELDS:
            if name in changes and getattr(report, name) != changes[name]:
                setattr(report, name, changes[name])
                update_fields.append(name)
        if update_fields:
            report.save(update_fields=[*update_fields, "updated_at"])

        ChangeLogService.log(
            action="WEEKLY_REPORT_UPDATED",
            entity_type="weekly_compliance_report",
            entity_id=report.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before=before,
            after=snapshot(report, REPORT_UPDATE_FIELDS),
        )
        return report
