# ndis_core/audits/services.py
from __future__ import annotations

import logging
from typing import Iterable, Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils.timezone import now
from rest_framework.exceptions import ValidationError

from ndis_core.audits.models import (
    Audit,
    AuditRun,
    AuditScopeDomain,
    AuditScopeLineItem,
    AuditStatus,
    AuditTemplate,
    AuditTemplateIndicator,
    AuditType,
    RiskLevel,
)
from ndis_core.audits.selectors import AuditSelector, AuditTemplateSelector
from ndis_core.catalogue.models import AuditDomain, SupportLineItem
from ndis_core.catalogue.selectors import find_service_context_label, selected_line_item_ids, service_context_key_for
from ndis_core.catalogue.services import CatalogueService
from ndis_core.changelog.services import ChangeLogService
from ndis_core.common.api.exceptions import PreconditionFailed, RuleViolation

logger = logging.getLogger(__name__)


class AuditService:
    """
    Audit lifecycle state machine:

      DRAFT -> IN_PROGRESS -> IN_REVIEW -> CLOSED
      close is allowed from any non-CLOSED state (DRAFT subject to AUDIT_ALLOW_CLOSE_FROM_DRAFT)

    Every check runs before the first write; each method is one transaction.
    """

    # -------------------------
    # Internal helpers
    # -------------------------
    @staticmethod
    def _touch_updated_at(audit: Audit, update_fields: list[str]) -> None:
        audit.updated_at = now()
        update_fields.append("updated_at")

    @staticmethod
    def _replace_line_items(audit: Audit, line_item_ids: list[UUID]) -> None:
        AuditScopeLineItem.objects.filter(audit=audit).delete()
        AuditScopeLineItem.objects.bulk_create(
            [AuditScopeLineItem(audit=audit, line_item_id=li) for li in line_item_ids]
        )

    @staticmethod
    def _replace_domains(audit: Audit, domain_ids: list[UUID]) -> None:
        AuditScopeDomain.objects.filter(audit=audit).delete()
        AuditScopeDomain.objects.bulk_create(
            [AuditScopeDomain(audit=audit, domain_id=d, is_included=True) for d in domain_ids]
        )

    @staticmethod
    def _validate_domains(*, tenant_id: UUID, domain_ids: list[UUID]) -> None:
        found = set(AuditDomain.objects.filter(tenant_id=tenant_id, id__in=domain_ids).values_list("id", flat=True))
        invalid = [str(d) for d in domain_ids if d not in found]
        if invalid:
            raise ValidationError({"domain_ids": f"Unknown audit domains: {invalid}"})

    @staticmethod
    def _ensure_scope_unlocked(audit: Audit) -> None:
        if audit.scope_locked:
            raise PreconditionFailed("Audit scope is locked and cannot be modified.")

    # -------------------------
    # Create
    # -------------------------
    @staticmethod
    @transaction.atomic
    def create_audit(
        *,
        tenant_id: UUID,
        actor_user_id: int | None,
        audit_type: str,
        title: str,
        service_context_label: str,
        line_item_ids: Iterable[UUID],
        description: str = "",
        scope_time_from=None,
        scope_time_to=None,
        external_auditor_name: str = "",
        external_auditor_org: str = "",
        external_auditor_email: str = "",
        domain_ids: Optional[Iterable[UUID]] = None,
    ) -> Audit:
        line_item_ids = list(dict.fromkeys(line_item_ids or []))
        if not line_item_ids:
            raise ValidationError({"line_item_ids": "At least one line item must be selected."})

        label = find_service_context_label(service_context_label)
        if label is None:
            raise ValidationError({"service_context_label": "The selected service context is not valid."})

        if audit_type == AuditType.EXTERNAL and not (
            external_auditor_name and external_auditor_org and external_auditor_email
        ):
            raise ValidationError({"detail": "External auditor details required for external audits."})

        active = set(SupportLineItem.objects.filter(id__in=line_item_ids, is_active=True).values_list("id", flat=True))
        invalid = [str(i) for i in line_item_ids if i not in active]
        if invalid:
            raise ValidationError({"line_item_ids": f"Some selected line items are not valid: {invalid}"})

        all_domains = CatalogueService.ensure_default_domains(tenant_id=tenant_id)
        if domain_ids:
            domain_ids = list(dict.fromkeys(domain_ids))
            AuditService._validate_domains(tenant_id=tenant_id, domain_ids=domain_ids)
        else:
            domain_ids = [d.id for d in all_domains if d.is_enabled_by_default]

        audit = Audit.objects.create(
            tenant_id=tenant_id,
            audit_type=audit_type,
            status=AuditStatus.DRAFT,
            title=title.strip(),
            description=description or "",
            service_context=service_context_key_for(label),
            service_context_label=label,
            scope_time_from=scope_time_from,
            scope_time_to=scope_time_to,
            external_auditor_name=external_auditor_name or "",
            external_auditor_org=external_auditor_org or "",
            external_auditor_email=external_auditor_email or "",
            created_by_id=actor_user_id,
            scope_locked=False,
        )
        AuditService._replace_line_items(audit, line_item_ids)
        AuditService._replace_domains(audit, domain_ids)

        ChangeLogService.log(
            action="AUDIT_CREATED",
            entity_type="audit",
            entity_id=audit.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={
                "audit_type": audit.audit_type,
                "title": audit.title,
                "service_context": audit.service_context,
                "service_context_label": audit.service_context_label,
                "scope_line_item_count": len(line_item_ids),
                "scope_domain_count": len(domain_ids),
            },
        )
        logger.info("Audit created id=%s tenant=%s type=%s", audit.id, tenant_id, audit.audit_type)
        return audit

    # -------------------------
    # Scope
    # -------------------------
    @staticmethod
    @transaction.atomic
    def update_scope(*, tenant_id: UUID, audit_id: UUID, line_item_ids: Iterable[UUID], actor_user_id: int | None) -> Audit:
        audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id, for_update=True)
        AuditService._ensure_scope_unlocked(audit)

        line_item_ids = list(dict.fromkeys(line_item_ids or []))
        if not line_item_ids:
            raise ValidationError({"line_item_ids": "At least one line item is required."})

        allowed = selected_line_item_ids(tenant_id=tenant_id)
        invalid = [str(i) for i in line_item_ids if i not in allowed]
        if invalid:
            raise ValidationError({"line_item_ids": f"Line items not available for this company: {invalid}"})

        before = sorted(str(i) for i in audit.scope_line_items.values_list("line_item_id", flat=True))
        AuditService._replace_line_items(audit, line_item_ids)

        ChangeLogService.log(
            action="AUDIT_SCOPE_UPDATED",
            entity_type="audit",
            entity_id=audit.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"line_item_ids": before},
            after={"line_item_ids": sorted(str(i) for i in line_item_ids)},
        )
        return audit

    @staticmethod
    @transaction.atomic
    def update_domains(*, tenant_id: UUID, audit_id: UUID, domain_ids: Iterable[UUID], actor_user_id: int | None) -> Audit:
        audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id, for_update=True)
        AuditService._ensure_scope_unlocked(audit)

        domain_ids = list(dict.fromkeys(domain_ids or []))
        AuditService._validate_domains(tenant_id=tenant_id, domain_ids=domain_ids)

        before = sorted(str(i) for i in audit.scope_domains.values_list("domain_id", flat=True))
        AuditService._replace_domains(audit, domain_ids)

        ChangeLogService.log(
            action="AUDIT_DOMAINS_UPDATED",
            entity_type="audit",
            entity_id=audit.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"domain_ids": before},
            after={"domain_ids": sorted(str(i) for i in domain_ids)},
        )
        return audit

    # -------------------------
    # Template
    # -------------------------
    @staticmethod
    @transaction.atomic
    def select_template(*, tenant_id: UUID, audit_id: UUID, template_id: UUID, actor_user_id: int | None) -> AuditRun:
        audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id, for_update=True)

        if audit.scope_locked and audit.status != AuditStatus.DRAFT:
            raise PreconditionFailed("Cannot change template after the audit has started.")

        template = AuditTemplateSelector.get_template(tenant_id=tenant_id, template_id=template_id)
        if not template.is_active:
            raise ValidationError({"template_id": "Template is not active."})

        run, created = AuditRun.objects.update_or_create(audit=audit, defaults={"template": template})

        ChangeLogService.log(
            action="AUDIT_TEMPLATE_SELECTED",
            entity_type="audit",
            entity_id=audit.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={"template_id": str(template.id), "template_name": template.name, "created": created},
        )
        return run

    # -------------------------
    # Transitions
    # -------------------------
    @staticmethod
    @transaction.atomic
    def start(*, tenant_id: UUID, audit_id: UUID, actor_user_id: int | None) -> Audit:
        audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id, for_update=True)

        if audit.status != AuditStatus.DRAFT:
            raise PreconditionFailed("Audit has already been started.")

        if not audit.scope_line_items.exists():
            raise PreconditionFailed("At least one scope line item must be selected.")

        run = AuditSelector.get_run_or_none(audit=audit)
        if run is None:
            raise PreconditionFailed("A template must be selected before starting.")

        update_fields = ["status"]
        audit.status = AuditStatus.IN_PROGRESS
        if audit.audit_type == AuditType.EXTERNAL:
            audit.scope_locked = True
            update_fields.append("scope_locked")

        AuditService._touch_updated_at(audit, update_fields)
        audit.save(update_fields=update_fields)

        run.started_at = now()
        run.save(update_fields=["started_at", "updated_at"])

        ChangeLogService.log(
            action="AUDIT_STARTED",
            entity_type="audit",
            entity_id=audit.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"status": AuditStatus.DRAFT},
            after={"status": audit.status, "scope_locked": audit.scope_locked},
        )
        logger.info("Audit started id=%s tenant=%s", audit.id, tenant_id)
        return audit

    @staticmethod
    @transaction.atomic
    def submit_for_review(*, tenant_id: UUID, audit_id: UUID, actor_user_id: int | None) -> Audit:
        audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id, for_update=True)

        if audit.status != AuditStatus.IN_PROGRESS:
            raise PreconditionFailed("Audit must be in progress to submit.")

        run = AuditSelector.get_run_or_none(audit=audit)
        if run is None:
            raise PreconditionFailed("No template selected for this audit.")

        indicator_count = run.template.indicators.count()
        response_count = audit.responses.count()
        if response_count < indicator_count:
            missing = indicator_count - response_count
            raise PreconditionFailed(
                f"All indicators must have responses before submitting ({missing} missing).",
                details={"missing": missing, "indicator_count": indicator_count, "response_count": response_count},
            )

        audit.status = AuditStatus.IN_REVIEW
        update_fields = ["status"]
        AuditService._touch_updated_at(audit, update_fields)
        audit.save(update_fields=update_fields)

        ChangeLogService.log(
            action="AUDIT_SUBMITTED_FOR_REVIEW",
            entity_type="audit",
            entity_id=audit.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"status": AuditStatus.IN_PROGRESS},
            after={"status": audit.status},
        )
        logger.info("Audit submitted for review id=%s tenant=%s", audit.id, tenant_id)
        return audit

    @staticmethod
    @transaction.atomic
    def close(*, tenant_id: UUID, audit_id: UUID, close_reason: str = "", actor_user_id: int | None) -> Audit:
        from ndis_core.findings.selectors import FindingSelector

        audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id, for_update=True)

        if audit.status == AuditStatus.CLOSED:
            raise PreconditionFailed("Audit is already closed.")

        if audit.status == AuditStatus.DRAFT and not settings.AUDIT_ALLOW_CLOSE_FROM_DRAFT:
            raise PreconditionFailed("Draft audits cannot be closed.")

        close_reason = (close_reason or "").strip()
        open_major = FindingSelector.open_major_count(tenant_id=tenant_id, audit_id=audit.id)
        if open_major > 0 and not close_reason:
            raise RuleViolation(
                "Cannot close audit with open major findings without providing a reason.",
                details={"open_major_findings": open_major},
            )

        before_status = audit.status
        audit.status = AuditStatus.CLOSED
        audit.close_reason = close_reason
        audit.closed_at = now()
        audit.closed_by_id = actor_user_id

        update_fields = ["status", "close_reason", "closed_at", "closed_by"]
        AuditService._touch_updated_at(audit, update_fields)
        audit.save(update_fields=update_fields)

        ChangeLogService.log(
            action="AUDIT_CLOSED",
            entity_type="audit",
            entity_id=audit.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"status": before_status},
            after={"status": audit.status, "close_reason": close_reason or None, "open_major_findings": open_major},
        )
        logger.info("Audit closed id=%s tenant=%s from=%s", audit.id, tenant_id, before_status)
        return audit


class AuditTemplateService:
    @staticmethod
    @transaction.atomic
    def create_template(
        *,
        tenant_id: UUID,
        actor_user_id: int | None,
        name: str,
        description: str = "",
        version: str = "1",
    ) -> AuditTemplate:
        name = (name or "").strip()
        if not name:
            raise ValidationError({"name": "Name is required."})

        template = AuditTemplate.objects.create(
            tenant_id=tenant_id,
            name=name,
            description=description or "",
            version=version or "1",
        )
        ChangeLogService.log(
            action="AUDIT_TEMPLATE_CREATED",
            entity_type="audit_template",
            entity_id=template.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={"name": template.name},
        )
        return template

    @staticmethod
    @transaction.atomic
    def add_indicator(
        *,
        tenant_id: UUID,
        template_id: UUID,
        actor_user_id: int | None,
        indicator_text: str,
        guidance_text: str = "",
        evidence_requirements: str = "",
        risk_level: str = RiskLevel.MEDIUM,
        is_critical_control: bool = False,
        sort_order: int = 0,
    ) -> AuditTemplateIndicator:
        template = AuditTemplateSelector.get_template(tenant_id=tenant_id, template_id=template_id)

        indicator_text = (indicator_text or "").strip()
        if not indicator_text:
            raise ValidationError({"indicator_text": "Indicator text is required."})

        indicator = AuditTemplateIndicator.objects.create(
            tenant_id=tenant_id,
            template=template,
            indicator_text=indicator_text,
            guidance_text=guidance_text or "",
            evidence_requirements=evidence_requirements or "",
            risk_level=risk_level,
            is_critical_control=is_critical_control,
            sort_order=sort_order,
        )
        ChangeLogService.log(
            action="AUDIT_INDICATOR_ADDED",
            entity_type="audit_template",
            entity_id=template.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={"indicator_id": str(indicator.id), "risk_level": risk_level},
        )
        return indicator
