# ndis_core/compliance/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional
from uuid import UUID

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.timezone import now
from rest_framework.exceptions import PermissionDenied, ValidationError

from ndis_core.changelog.services import ChangeLogService, snapshot
from ndis_core.common.api.exceptions import ConflictError, PreconditionFailed, RuleViolation
from ndis_core.compliance.models import (
    ActionStatus,
    ComplianceAction,
    ComplianceResponse,
    ComplianceRun,
    ComplianceScopeType,
    ComplianceTemplate,
    ComplianceTemplateItem,
    ResponseType,
    RunStatus,
)
from ndis_core.compliance.periods import period_for
from ndis_core.compliance.selectors import (
    ComplianceActionSelector,
    ComplianceRunSelector,
    ComplianceTemplateSelector,
)
from ndis_core.compliance.status import (
    YES_NO_NA_VALUES,
    is_number,
    missing_critical_items,
    planned_actions,
    status_color,
)
from ndis_core.iam.capabilities import ResourceScope, can_act_on_resource
from ndis_core.iam.models import CompanyMembership
from ndis_core.sites.selectors import ParticipantSelector, SiteSelector, assignment_set

logger = logging.getLogger(__name__)

TEMPLATE_UPDATE_FIELDS = ("name", "description", "applies_to_site_types", "is_active")
ITEM_FIELDS = (
    "title",
    "guidance_text",
    "response_type",
    "is_critical",
    "default_evidence_required",
    "evidence_source_type",
    "notes_required_on_fail",
    "sort_order",
)
ACTION_UPDATE_FIELDS = ("assigned_to_user_id", "status", "due_at")


def _apply_changes(instance, changes: dict[str, Any], allowed: tuple[str, ...]) -> list[str]:
    update_fields: list[str] = []
    for name in allowed:
        if name in changes and getattr(instance, name) != changes[name]:
            setattr(instance, name, changes[name])
            update_fields.append(name[:-3] if name.endswith("_user_id") else name)
    return update_fields


@dataclass(frozen=True)
class SubmitResult:
    run: ComplianceRun
    status_color: str
    actions: list[ComplianceAction]

    @property
    def actions_created(self) -> int:
        return len(self.actions)


class ComplianceTemplateService:
    """
    Templates + items. Templates are deactivated, items are deleted.
    """

    @staticmethod
    @transaction.atomic
    def create_template(
        *,
        tenant_id: UUID,
        actor_user_id: int | None,
        name: str,
        scope_type: str,
        frequency: str,
        description: str = "",
        applies_to_site_types: Optional[list[str]] = None,
        is_active: bool = True,
    ) -> ComplianceTemplate:
        template = ComplianceTemplate.objects.create(
            tenant_id=tenant_id,
            name=name.strip(),
            description=description or "",
            scope_type=scope_type,
            frequency=frequency,
            applies_to_site_types=list(applies_to_site_types or []),
            is_active=is_active,
        )
        ChangeLogService.log(
            action="COMPLIANCE_TEMPLATE_CREATED",
            entity_type="compliance_template",
            entity_id=template.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after=snapshot(template, ("name", "scope_type", "frequency", "is_active")),
        )
        return template

    @staticmethod
    @transaction.atomic
    def update_template(
        *,
        tenant_id: UUID,
        template_id: UUID,
        changes: dict[str, Any],
        actor_user_id: int | None,
    ) -> ComplianceTemplate:
        template = ComplianceTemplateSelector.get_template(tenant_id=tenant_id, template_id=template_id)
        before = snapshot(template, TEMPLATE_UPDATE_FIELDS)

        update_fields = _apply_changes(template, changes, TEMPLATE_UPDATE_FIELDS)
        if update_fields:
            template.save(update_fields=[*update_fields, "updated_at"])

        ChangeLogService.log(
            action="COMPLIANCE_TEMPLATE_UPDATED",
            entity_type="compliance_template",
            entity_id=template.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before=before,
            after=snapshot(template, TEMPLATE_UPDATE_FIELDS),
        )
        return template

    @staticmethod
    def deactivate_template(*, tenant_id: UUID, template_id: UUID, actor_user_id: int | None) -> ComplianceTemplate:
        return ComplianceTemplateService.update_template(
            tenant_id=tenant_id,
            template_id=template_id,
            changes={"is_active": False},
            actor_user_id=actor_user_id,
        )

    @staticmethod
    @transaction.atomic
    def add_item(
        *,
        tenant_id: UUID,
        template_id: UUID,
        actor_user_id: int | None,
        **fields: Any,
    ) -> ComplianceTemplateItem:
        template = ComplianceTemplateSelector.get_template(tenant_id=tenant_id, template_id=template_id)

        values = {k: v for k, v in fields.items() if k in ITEM_FIELDS}
        if "sort_order" not in values or values["sort_order"] is None:
            values["sort_order"] = template.items.count()

        item = ComplianceTemplateItem.objects.create(tenant_id=tenant_id, template=template, **values)
        ChangeLogService.log(
            action="COMPLIANCE_TEMPLATE_ITEM_ADDED",
            entity_type="compliance_template",
            entity_id=template.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={"item_id": str(item.id), **snapshot(item, ("title", "response_type", "is_critical"))},
        )
        return item

    @staticmethod
    @transaction.atomic
    def update_item(
        *,
        tenant_id: UUID,
        item_id: UUID,
        changes: dict[str, Any],
        actor_user_id: int | None,
    ) -> ComplianceTemplateItem:
        item = ComplianceTemplateSelector.get_item(tenant_id=tenant_id, item_id=item_id)
        before = snapshot(item, ITEM_FIELDS)

        update_fields = _apply_changes(item, changes, ITEM_FIELDS)
        if update_fields:
            item.save(update_fields=[*update_fields, "updated_at"])

        ChangeLogService.log(
            action="COMPLIANCE_TEMPLATE_ITEM_UPDATED",
            entity_type="compliance_template_item",
            entity_id=item.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before=before,
            after=snapshot(item, ITEM_FIELDS),
        )
        return item

    @staticmethod
    @transaction.atomic
    def delete_item(*, tenant_id: UUID, item_id: UUID, actor_user_id: int | None) -> None:
        item = ComplianceTemplateSelector.get_item(tenant_id=tenant_id, item_id=item_id)
        if item.responses.exists():
            raise PreconditionFailed("Items that already have responses cannot be deleted.")

        before = snapshot(item, ITEM_FIELDS)
        item_pk = item.id
        item.delete()

        ChangeLogService.log(
            action="COMPLIANCE_TEMPLATE_ITEM_DELETED",
            entity_type="compliance_template_item",
            entity_id=item_pk,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before=before,
        )


class ComplianceRunService:
    """
    Run lifecycle: create (OPEN) -> respond* -> submit (SUBMITTED).
    """

    @staticmethod
    @transaction.atomic
    def create_run(
        *,
        tenant_id: UUID,
        template_id: UUID,
        actor_user_id: int | None,
        actor_role: str | None,
        site_id: Optional[UUID] = None,
        participant_id: Optional[UUID] = None,
        day: Optional[date] = None,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
    ) -> ComplianceRun:
        template = ComplianceTemplateSelector.get_template(tenant_id=tenant_id, template_id=template_id)
        if not template.is_active:
            raise ValidationError({"template_id": "Template is not active."})

        site = participant = None
        if template.scope_type == ComplianceScopeType.SITE:
            if not site_id:
                raise ValidationError({"site_id": "site_id is required for this template."})
            site = SiteSelector.get_site(tenant_id=tenant_id, site_id=site_id)
            resource = ResourceScope(site_id=site.id)
            scope_entity_id = site.id
        else:
            if not participant_id:
                raise ValidationError({"participant_id": "participant_id is required for this template."})
            participant = ParticipantSelector.get_participant(tenant_id=tenant_id, participant_id=participant_id)
            resource = ResourceScope(participant_id=participant.id)
            scope_entity_id = participant.id

        if not can_act_on_resource(
            role=actor_role,
            resource=resource,
            assignments=assignment_set(tenant_id=tenant_id, user_id=actor_user_id),
            actor_user_id=actor_user_id,
        ):
            raise PermissionDenied(f"You are not assigned to this {template.scope_type.lower()}.")

        start, end = period_for(
            frequency=template.frequency,
            day=day,
            period_start=period_start,
            period_end=period_end,
        )
        period_date = timezone.localdate(start)

        try:
            with transaction.atomic(savepoint=True):
                run = ComplianceRun.objects.create(
                    tenant_id=tenant_id,
                    template=template,
                    scope_type=template.scope_type,
                    frequency=template.frequency,
                    site=site,
                    participant=participant,
                    scope_entity_id=scope_entity_id,
                    period_start=start,
                    period_end=end,
                    period_date=period_date,
                    status=RunStatus.OPEN,
                    created_by_id=actor_user_id,
                )
        except IntegrityError:
            existing = ComplianceRun.objects.filter(
                tenant_id=tenant_id,
                template=template,
                scope_type=template.scope_type,
                scope_entity_id=scope_entity_id,
                period_date=period_date,
            ).first()
            logger.warning("Duplicate compliance run template=%s scope=%s date=%s", template.id, scope_entity_id, period_date)
            raise ConflictError(
                "A compliance run already exists for this scope and period.",
                details={"existing_run_id": str(existing.id) if existing else None},
            )

        ChangeLogService.log(
            action="COMPLIANCE_RUN_CREATED",
            entity_type="compliance_run",
            entity_id=run.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={
                "template_id": str(template.id),
                "scope_type": run.scope_type,
                "scope_entity_id": str(scope_entity_id),
                "period_date": period_date.isoformat(),
            },
        )
        logger.info("Compliance run created id=%s tenant=%s template=%s", run.id, tenant_id, template.id)
        return run

    @staticmethod
    def _validate_value(item: ComplianceTemplateItem, value: str, attachment_path: str) -> None:
        if item.response_type == ResponseType.YES_NO_NA and value and value not in YES_NO_NA_VALUES:
            raise ValidationError({"response_value": "Response must be YES, NO, or NA."})
        if item.response_type == ResponseType.NUMBER and value and not is_number(value):
            raise ValidationError({"response_value": "Response must be a number."})
        if item.response_type == ResponseType.PHOTO_REQUIRED and not attachment_path:
            raise ValidationError({"attachment_path": "Photo attachment is required."})

    @staticmethod
    @transaction.atomic
    def respond(
        *,
        tenant_id: UUID,
        run_id: UUID,
        template_item_id: UUID,
        response_value: str = "",
        notes: str = "",
        attachment_path: str = "",
        actor_user_id: int | None,
    ) -> ComplianceResponse:
        run = ComplianceRunSelector.get_run(tenant_id=tenant_id, run_id=run_id, for_update=True)
        if run.status != RunStatus.OPEN:
            raise PreconditionFailed("Cannot respond to a submitted or locked run.")

        item = ComplianceTemplateItem.objects.filter(id=template_item_id, template_id=run.template_id).first()
        if item is None:
            raise ValidationError({"template_item_id": "Invalid template item."})

        value = (response_value or "").strip()
        if item.response_type == ResponseType.YES_NO_NA:
            value = value.upper()
        ComplianceRunService._validate_value(item, value, attachment_path or "")

        values = {"response_value": value, "notes": notes or "", "attachment_path": attachment_path or ""}
        existing = ComplianceResponse.objects.select_for_update().filter(run=run, template_item=item).first()
        if existing is None:
            try:
                with transaction.atomic(savepoint=True):
                    response = ComplianceResponse.objects.create(
                        tenant_id=tenant_id,
                        run=run,
                        template_item=item,
                        created_by_id=actor_user_id,
                        **values,
                    )
            except IntegrityError:
                logger.warning("Concurrent compliance response insert run=%s item=%s; updating", run.id, item.id)
                existing = ComplianceResponse.objects.select_for_update().get(run=run, template_item=item)

        if existing is not None:
            for name, value_ in values.items():
                setattr(existing, name, value_)
            existing.save(update_fields=[*values.keys(), "updated_at"])
            response = existing

        ChangeLogService.log(
            action="COMPLIANCE_RESPONSE_SAVED",
            entity_type="compliance_run",
            entity_id=run.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={"template_item_id": str(item.id), "response_value": value},
        )
        return response

    @staticmethod
    @transaction.atomic
    def submit(*, tenant_id: UUID, run_id: UUID, actor_user_id: int | None) -> SubmitResult:
        run = ComplianceRunSelector.get_run(tenant_id=tenant_id, run_id=run_id, for_update=True)
        if run.status != RunStatus.OPEN:
            raise PreconditionFailed("Run has already been submitted.")

        items = list(ComplianceTemplateSelector.list_items(template=run.template))
        responses = ComplianceRunSelector.responses_by_item(run=run)

        missing = missing_critical_items(items, responses)
        if missing:
            raise RuleViolation(
                f'Critical item "{missing[0].title}" requires a response.',
                details={"missing_critical_items": [item.title for item in missing]},
            )

        colour = status_color(items, responses)
        actions = ComplianceAction.objects.bulk_create(
            [
                ComplianceAction(
                    tenant_id=tenant_id,
                    run=run,
                    template_item_id=planned.template_item_id,
                    site_id=run.site_id,
                    participant_id=run.participant_id,
                    severity=planned.severity,
                    status=ActionStatus.OPEN,
                    title=planned.title,
                    description=planned.description,
                )
                for planned in planned_actions(items, responses)
            ]
        )

        run.status = RunStatus.SUBMITTED
        run.submitted_by_id = actor_user_id
        run.submitted_at = now()
        run.save(update_fields=["status", "submitted_by", "submitted_at", "updated_at"])

        ChangeLogService.log(
            action="COMPLIANCE_RUN_SUBMITTED",
            entity_type="compliance_run",
            entity_id=run.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"status": RunStatus.OPEN},
            after={"status": run.status, "status_color": colour, "actions_created": len(actions)},
        )
        logger.info(
            "Compliance run submitted id=%s tenant=%s colour=%s actions=%s", run.id, tenant_id, colour, len(actions)
        )
        return SubmitResult(run=run, status_color=colour, actions=actions)


class ComplianceActionService:
    @staticmethod
    def _ensure_can_act(action: ComplianceAction, *, tenant_id: UUID, actor_user_id: int | None, actor_role: str | None) -> None:
        allowed = can_act_on_resource(
            role=actor_role,
            resource=ResourceScope(
                site_id=action.site_id,
                participant_id=action.participant_id,
                assigned_user_id=action.assigned_to_user_id,
            ),
            assignments=assignment_set(tenant_id=tenant_id, user_id=actor_user_id),
            actor_user_id=actor_user_id,
        )
        if not allowed:
            raise PermissionDenied("You are not authorized to act on this action.")

    @staticmethod
    @transaction.atomic
    def update_action(
        *,
        tenant_id: UUID,
        action_id: UUID,
        changes: dict[str, Any],
        actor_user_id: int | None,
        actor_role: str | None,
    ) -> ComplianceAction:
        """
        Explicit fields only: assigned_to_user_id, status (OPEN / IN_PROGRESS), due_at.
        Closing goes through close_action. StaffReadOnly edits only actions it can act on.
        """
        action = ComplianceActionSelector.get_action(tenant_id=tenant_id, action_id=action_id, for_update=True)
        ComplianceActionService._ensure_can_act(
            action, tenant_id=tenant_id, actor_user_id=actor_user_id, actor_role=actor_role
        )
        if action.status == ActionStatus.CLOSED:
            raise PreconditionFailed("Closed actions cannot be changed.")

        if changes.get("status") == ActionStatus.CLOSED:
            raise ValidationError({"status": "Use the close endpoint to close an action."})

        assignee = changes.get("assigned_to_user_id")
        if assignee is not None and not CompanyMembership.objects.filter(
            company_id=tenant_id, user_id=assignee, is_active=True
        ).exists():
            raise ValidationError({"assigned_to_user_id": "Assignee must be a member of this company."})

        before = snapshot(action, ACTION_UPDATE_FIELDS)
        update_fields = _apply_changes(action, changes, ACTION_UPDATE_FIELDS)
        if update_fields:
            action.save(update_fields=[*update_fields, "updated_at"])

        ChangeLogService.log(
            action="COMPLIANCE_ACTION_UPDATED",
            entity_type="compliance_action",
            entity_id=action.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before=before,
            after=snapshot(action, ACTION_UPDATE_FIELDS),
        )
        return action

    @staticmethod
    @transaction.atomic
    def close_action(
        *,
        tenant_id: UUID,
        action_id: UUID,
        closure_notes: str,
        closure_attachment_path: str = "",
        actor_user_id: int | None,
        actor_role: str | None,
    ) -> ComplianceAction:
        action = ComplianceActionSelector.get_action(tenant_id=tenant_id, action_id=action_id, for_update=True)
        ComplianceActionService._ensure_can_act(
            action, tenant_id=tenant_id, actor_user_id=actor_user_id, actor_role=actor_role
        )

        if action.status == ActionStatus.CLOSED:
            raise PreconditionFailed("Action is already closed.")

        closure_notes = (closure_notes or "").strip()
        if not closure_notes:
            raise ValidationError({"closure_notes": "Closure notes are required."})

        before_status = action.status
        action.status = ActionStatus.CLOSED
        action.closed_at = now()
        action.closed_by_id = actor_user_id
        action.closure_notes = closure_notes
        action.closure_attachment_path = closure_attachment_path or ""
        action.save(
            update_fields=["status", "closed_at", "closed_by", "closure_notes", "closure_attachment_path", "updated_at"]
        )

        ChangeLogService.log(
            action="COMPLIANCE_ACTION_CLOSED",
            entity_type="compliance_action",
            entity_id=action.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"status": before_status},
            after={"status": action.status, "closure_notes": closure_notes},
        )
        logger.info("Compliance action closed id=%s tenant=%s", action.id, tenant_id)
        return action
