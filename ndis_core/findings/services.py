# ndis_core/findings/services.py
from __future__ import annotations

import logging
import secrets
from typing import Any, Optional
from uuid import UUID

from django.db import IntegrityError, transaction
from django.utils.timezone import now
from rest_framework.exceptions import PermissionDenied, ValidationError

from ndis_core.audits.selectors import AuditSelector, AuditTemplateSelector
from ndis_core.changelog.services import ChangeLogService, snapshot
from ndis_core.common.api.exceptions import ConflictError, PreconditionFailed
from ndis_core.common.permissions import REVIEW_ROLES
from ndis_core.findings.models import (
    EvidenceItem,
    EvidenceRequest,
    EvidenceStatus,
    EvidenceType,
    Finding,
    FindingStatus,
    StorageKind,
)
from ndis_core.findings.selectors import EvidenceSelector, FindingSelector
from ndis_core.iam.models import CompanyMembership

logger = logging.getLogger(__name__)

FINDING_UPDATE_FIELDS = ("owner_user_id", "due_date", "status")
DEFAULT_ACCEPT_NOTE = "Evidence accepted"


def finding_text_for(indicator_text: str, comment: str) -> str:
    return f"Indicator: {indicator_text}. Auditor comment: {comment}."


def generate_public_token() -> str:
    return secrets.token_hex(32)


class FindingService:
    """
    Finding write-model.
    """

    @staticmethod
    @transaction.atomic
    def create_from_response(
        *,
        tenant_id: UUID,
        audit_id: UUID,
        indicator_id: UUID,
        indicator_text: str,
        severity: str,
        comment: str,
        actor_user_id: int | None,
        added_in_review: bool = False,
    ) -> tuple[Finding, bool]:
        """
        Idempotent per (audit, indicator). Returns (finding, created).
        A re-rated indicator keeps its original finding untouched.
        """
        existing = Finding.objects.filter(audit_id=audit_id, indicator_id=indicator_id).first()
        if existing is not None:
            return existing, False

        try:
            with transaction.atomic(savepoint=True):
                finding = Finding.objects.create(
                    tenant_id=tenant_id,
                    audit_id=audit_id,
                    indicator_id=indicator_id,
                    severity=severity,
                    finding_text=finding_text_for(indicator_text, comment),
                    status=FindingStatus.OPEN,
                )
        except IntegrityError:
            logger.warning("Finding already exists audit=%s indicator=%s", audit_id, indicator_id)
            return Finding.objects.get(audit_id=audit_id, indicator_id=indicator_id), False

        after = {"severity": severity, "audit_id": str(audit_id)}
        if added_in_review:
            after["added_in_review"] = True
        ChangeLogService.log(
            action="FINDING_CREATED",
            entity_type="finding",
            entity_id=finding.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after=after,
        )
        logger.info("Finding created id=%s audit=%s severity=%s", finding.id, audit_id, severity)
        return finding, True

    @staticmethod
    @transaction.atomic
    def update_finding(
        *,
        tenant_id: UUID,
        finding_id: UUID,
        changes: dict[str, Any],
        actor_user_id: int | None,
        actor_role: str | None,
    ) -> Finding:
        """
        Explicit fields only: owner_user_id, due_date, status.
        Manual CLOSED needs CompanyAdmin / Reviewer.
        """
        finding = FindingSelector.get_finding(tenant_id=tenant_id, finding_id=finding_id, for_update=True)

        new_status = changes.get("status")
        if new_status == FindingStatus.CLOSED and actor_role not in REVIEW_ROLES:
            raise PermissionDenied("Only CompanyAdmin or Reviewer can close findings.")

        if finding.status == FindingStatus.CLOSED:
            raise PreconditionFailed("Closed findings cannot be changed.")

        owner_user_id = changes.get("owner_user_id")
        if owner_user_id is not None and not CompanyMembership.objects.filter(
            company_id=tenant_id, user_id=owner_user_id, is_active=True
        ).exists():
            raise ValidationError({"owner_user_id": "Owner must be a member of this company."})

        before = snapshot(finding, FINDING_UPDATE_FIELDS)
        update_fields: list[str] = []

        for name in FINDING_UPDATE_FIELDS:
            if name in changes and getattr(finding, name) != changes[name]:
                setattr(finding, name, changes[name])
                update_fields.append("owner_user" if name == "owner_user_id" else name)

        if new_status == FindingStatus.CLOSED and "status" in update_fields:
            finding.closed_at = now()
            finding.closed_by_id = actor_user_id
            update_fields += ["closed_at", "closed_by"]

        if update_fields:
            finding.updated_at = now()
            update_fields.append("updated_at")
            finding.save(update_fields=update_fields)

        ChangeLogService.log(
            action="FINDING_UPDATED",
            entity_type="finding",
            entity_id=finding.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before=before,
            after=snapshot(finding, FINDING_UPDATE_FIELDS),
        )
        if finding.status == FindingStatus.CLOSED:
            logger.info("Finding closed manually id=%s tenant=%s", finding.id, tenant_id)
        return finding


class EvidenceService:
    """
    Evidence request / submission / review chain.
    ACCEPTED cascades to closing the linked finding.
    """

    @staticmethod
    def _validate_request_input(*, evidence_type: str, request_note: str) -> str:
        if evidence_type not in EvidenceType.values:
            raise ValidationError({"evidence_type": "Invalid evidence type."})
        request_note = (request_note or "").strip()
        if not request_note:
            raise ValidationError({"request_note": "Request note is required."})
        return request_note

    @staticmethod
    def _log_requested(request: EvidenceRequest, actor_user_id: int | None, extra: dict[str, Any]) -> None:
        ChangeLogService.log(
            action="EVIDENCE_REQUESTED",
            entity_type="evidence_request",
            entity_id=request.id,
            tenant_id=request.tenant_id,
            actor_user_id=actor_user_id,
            after={"evidence_type": request.evidence_type, **extra},
        )
        logger.info("Evidence requested id=%s tenant=%s", request.id, request.tenant_id)

    @staticmethod
    @transaction.atomic
    def request_evidence(
        *,
        tenant_id: UUID,
        finding_id: UUID,
        evidence_type: str,
        request_note: str,
        due_date=None,
        actor_user_id: int | None,
    ) -> EvidenceRequest:
        finding = FindingSelector.get_finding(tenant_id=tenant_id, finding_id=finding_id, for_update=True)
        request_note = EvidenceService._validate_request_input(evidence_type=evidence_type, request_note=request_note)

        if finding.status == FindingStatus.CLOSED:
            raise PreconditionFailed("Evidence cannot be requested for a closed finding.")

        try:
            with transaction.atomic(savepoint=True):
                request = EvidenceRequest.objects.create(
                    tenant_id=tenant_id,
                    finding=finding,
                    audit_id=finding.audit_id,
                    template_indicator_id=finding.indicator_id,
                    evidence_type=evidence_type,
                    request_note=request_note,
                    due_date=due_date,
                    status=EvidenceStatus.REQUESTED,
                    requested_by_id=actor_user_id,
                    public_token=generate_public_token(),
                )
        except IntegrityError:
            existing = EvidenceSelector.active_request_for_finding(tenant_id=tenant_id, finding_id=finding.id)
            logger.warning("Duplicate evidence request for finding=%s", finding.id)
            raise ConflictError(
                "An evidence request already exists for this finding.",
                details={"existing_request_id": str(existing.id) if existing else None},
            )

        EvidenceService._log_requested(request, actor_user_id, {"finding_id": str(finding.id)})
        return request

    @staticmethod
    @transaction.atomic
    def create_request(
        *,
        tenant_id: UUID,
        evidence_type: str,
        request_note: str,
        due_date=None,
        audit_id: Optional[UUID] = None,
        template_indicator_id: Optional[UUID] = None,
        actor_user_id: int | None,
    ) -> EvidenceRequest:
        """
        Standalone (no audit) or audit-linked (optionally one indicator of the audit's template).
        """
        audit = None
        if audit_id:
            audit = AuditSelector.get_audit(tenant_id=tenant_id, audit_id=audit_id)

        request_note = EvidenceService._validate_request_input(evidence_type=evidence_type, request_note=request_note)

        if template_indicator_id:
            if audit is None:
                raise ValidationError({"template_indicator_id": "An indicator can only be linked through an audit."})
            run = AuditSelector.get_run_or_none(audit=audit)
            if run is None:
                raise ValidationError({"template_indicator_id": "The audit has no template selected."})
            AuditTemplateSelector.get_indicator_in_template(template_id=run.template_id, indicator_id=template_indicator_id)

        request = EvidenceRequest.objects.create(
            tenant_id=tenant_id,
            audit=audit,
            template_indicator_id=template_indicator_id,
            evidence_type=evidence_type,
            request_note=request_note,
            due_date=due_date,
            status=EvidenceStatus.REQUESTED,
            requested_by_id=actor_user_id,
            public_token=generate_public_token(),
        )

        extra: dict[str, Any] = {"standalone": audit is None}
        if audit is not None:
            extra["audit_id"] = str(audit.id)
            extra["template_indicator_id"] = str(template_indicator_id) if template_indicator_id else None
        EvidenceService._log_requested(request, actor_user_id, extra)
        return request

    @staticmethod
    @transaction.atomic
    def submit_evidence(
        *,
        tenant_id: UUID,
        request_id: UUID,
        storage_kind: str,
        file_name: str,
        file_path: str = "",
        mime_type: str = "",
        file_size_bytes: Optional[int] = None,
        external_url: str = "",
        note: str = "",
        actor_user_id: int | None,
    ) -> EvidenceItem:
        request = EvidenceSelector.get_request(tenant_id=tenant_id, request_id=request_id, for_update=True)

        if request.status not in (EvidenceStatus.REQUESTED, EvidenceStatus.REJECTED):
            raise PreconditionFailed("Evidence cannot be submitted in the current status.")

        if not (file_name or "").strip():
            raise ValidationError({"file_name": "This field is required."})

        if storage_kind == StorageKind.UPLOAD:
            if not file_path or not mime_type:
                raise ValidationError({"detail": "Upload requires file_path and mime_type."})
        elif storage_kind == StorageKind.LINK:
            if not external_url:
                raise ValidationError({"external_url": "Link requires external_url."})
        else:
            raise ValidationError({"storage_kind": f"Invalid storage kind. Allowed: {list(StorageKind.values)}"})

        item = EvidenceItem.objects.create(
            tenant_id=tenant_id,
            evidence_request=request,
            storage_kind=storage_kind,
            file_name=file_name.strip(),
            file_path=file_path or "",
            mime_type=mime_type or "",
            file_size_bytes=file_size_bytes,
            external_url=external_url or "",
            note=note or "",
            uploaded_by_id=actor_user_id,
        )

        before_status = request.status
        request.status = EvidenceStatus.SUBMITTED
        request.submitted_at = now()
        request.save(update_fields=["status", "submitted_at", "updated_at"])

        ChangeLogService.log(
            action="EVIDENCE_SUBMITTED",
            entity_type="evidence_item",
            entity_id=item.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"status": before_status},
            after={
                "evidence_request_id": str(request.id),
                "file_name": item.file_name,
                "storage_kind": storage_kind,
                "status": request.status,
            },
        )
        logger.info("Evidence submitted request=%s item=%s tenant=%s", request.id, item.id, tenant_id)
        return item

    @staticmethod
    @transaction.atomic
    def start_review(*, tenant_id: UUID, request_id: UUID, actor_user_id: int | None) -> EvidenceRequest:
        request = EvidenceSelector.get_request(tenant_id=tenant_id, request_id=request_id, for_update=True)

        if request.status != EvidenceStatus.SUBMITTED:
            raise PreconditionFailed("Only submitted evidence can be put under review.")

        request.status = EvidenceStatus.UNDER_REVIEW
        request.reviewed_by_id = actor_user_id
        request.save(update_fields=["status", "reviewed_by", "updated_at"])

        ChangeLogService.log(
            action="EVIDENCE_REVIEW_STARTED",
            entity_type="evidence_request",
            entity_id=request.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"status": EvidenceStatus.SUBMITTED},
            after={"status": request.status},
        )
        return request

    @staticmethod
    @transaction.atomic
    def review_evidence(
        *,
        tenant_id: UUID,
        request_id: UUID,
        decision: str,
        review_note: str = "",
        actor_user_id: int | None,
    ) -> EvidenceRequest:
        request = EvidenceSelector.get_request(tenant_id=tenant_id, request_id=request_id, for_update=True)

        if decision not in (EvidenceStatus.ACCEPTED, EvidenceStatus.REJECTED):
            raise ValidationError({"decision": "Decision must be ACCEPTED or REJECTED."})

        if request.status not in (EvidenceStatus.SUBMITTED, EvidenceStatus.UNDER_REVIEW):
            raise PreconditionFailed("Evidence must be submitted before a review decision.")

        review_note = (review_note or "").strip()
        before_status = request.status
        reviewed_at = now()

        request.status = decision
        request.reviewed_by_id = actor_user_id
        request.reviewed_at = reviewed_at
        request.review_note = review_note
        request.save(update_fields=["status", "reviewed_by", "reviewed_at", "review_note", "updated_at"])

        ChangeLogService.log(
            action="EVIDENCE_ACCEPTED" if decision == EvidenceStatus.ACCEPTED else "EVIDENCE_REJECTED",
            entity_type="evidence_request",
            entity_id=request.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"status": before_status},
            after={"status": request.status, "review_note": review_note or None},
        )

        if decision == EvidenceStatus.ACCEPTED and request.finding_id:
            EvidenceService._close_finding_on_accept(
                tenant_id=tenant_id,
                finding_id=request.finding_id,
                note=review_note or DEFAULT_ACCEPT_NOTE,
                closed_at=reviewed_at,
                actor_user_id=actor_user_id,
            )

        logger.info("Evidence reviewed request=%s decision=%s tenant=%s", request.id, decision, tenant_id)
        return request

    @staticmethod
    def _close_finding_on_accept(
        *,
        tenant_id: UUID,
        finding_id: UUID,
        note: str,
        closed_at,
        actor_user_id: int | None,
    ) -> None:
        finding = FindingSelector.get_finding(tenant_id=tenant_id, finding_id=finding_id, for_update=True)
        if finding.status == FindingStatus.CLOSED:
            return

        before_status = finding.status
        finding.status = FindingStatus.CLOSED
        finding.closure_note = note
        finding.closed_at = closed_at
        finding.closed_by_id = actor_user_id
        finding.save(update_fields=["status", "closure_note", "closed_at", "closed_by", "updated_at"])

        ChangeLogService.log(
            action="FINDING_CLOSED",
            entity_type="finding",
            entity_id=finding.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"status": before_status},
            after={"status": finding.status, "closure_note": note},
        )
        logger.info("Finding closed by accepted evidence id=%s tenant=%s", finding.id, tenant_id)
