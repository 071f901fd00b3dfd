# ndis_core/sites/services.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional
from uuid import UUID

from django.db import IntegrityError, transaction
from django.utils.timezone import now
from rest_framework.exceptions import NotFound, ValidationError

from ndis_core.changelog.services import ChangeLogService, snapshot
from ndis_core.common.api.exceptions import ConflictError
from ndis_core.iam.models import CompanyMembership
from ndis_core.sites.models import (
    Participant,
    ParticipantSiteAssignment,
    RecordStatus,
    StaffParticipantAssignment,
    StaffSiteAssignment,
    WorkSite,
)
from ndis_core.sites.selectors import AssignmentSelector, ParticipantSelector, SiteSelector

logger = logging.getLogger(__name__)

SITE_FIELDS = ("name", "address_line1", "suburb", "state", "postcode", "site_type", "status")
PARTICIPANT_FIELDS = ("first_name", "last_name", "display_name", "ndis_number", "date_of_birth", "primary_site_id", "status")


def _touch_updated_at(obj, update_fields: list[str]) -> None:
    if hasattr(obj, "updated_at"):
        obj.updated_at = now()
        update_fields.append("updated_at")


def _apply_changes(obj, changes: dict[str, Any], allowed: tuple[str, ...]) -> list[str]:
    update_fields: list[str] = []
    for name in allowed:
        if name in changes and getattr(obj, name) != changes[name]:
            setattr(obj, name, changes[name])
            update_fields.append(name)
    return update_fields


class SiteService:
    """
    Work site + participant registry.
    """

    @staticmethod
    @transaction.atomic
    def create_site(*, tenant_id: UUID, actor_user_id: int | None, name: str, **fields) -> WorkSite:
        name = (name or "").strip()
        if not name:
            raise ValidationError({"name": "This field is required."})

        site = WorkSite.objects.create(
            tenant_id=tenant_id,
            name=name,
            **{k: v for k, v in fields.items() if k in SITE_FIELDS and v is not None},
        )
        ChangeLogService.log(
            action="WORK_SITE_CREATED",
            entity_type="work_site",
            entity_id=site.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after=snapshot(site, SITE_FIELDS),
        )
        logger.info("Work site created id=%s tenant=%s", site.id, tenant_id)
        return site

    @staticmethod
    @transaction.atomic
    def update_site(*, tenant_id: UUID, site_id: UUID, actor_user_id: int | None, changes: dict[str, Any]) -> WorkSite:
        site = SiteSelector.get_site(tenant_id=tenant_id, site_id=site_id)
        before = snapshot(site, SITE_FIELDS)

        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError({"name": "This field may not be blank."})

        update_fields = _apply_changes(site, changes, SITE_FIELDS)
        if update_fields:
            _touch_updated_at(site, update_fields)
            site.save(update_fields=update_fields)
            ChangeLogService.log(
                action="WORK_SITE_UPDATED",
                entity_type="work_site",
                entity_id=site.id,
                tenant_id=tenant_id,
                actor_user_id=actor_user_id,
                before=before,
                after=snapshot(site, SITE_FIELDS),
            )
        return site

    @staticmethod
    def deactivate_site(*, tenant_id: UUID, site_id: UUID, actor_user_id: int | None) -> WorkSite:
        return SiteService.update_site(
            tenant_id=tenant_id,
            site_id=site_id,
            actor_user_id=actor_user_id,
            changes={"status": RecordStatus.INACTIVE},
        )

    @staticmethod
    @transaction.atomic
    def create_participant(
        *,
        tenant_id: UUID,
        actor_user_id: int | None,
        first_name: str,
        last_name: str,
        primary_site_id: Optional[UUID] = None,
        **fields,
    ) -> Participant:
        if primary_site_id:
            # must exist in this company
            SiteSelector.get_site(tenant_id=tenant_id, site_id=primary_site_id)

        participant = Participant.objects.create(
            tenant_id=tenant_id,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            primary_site_id=primary_site_id,
            **{k: v for k, v in fields.items() if k in PARTICIPANT_FIELDS and v is not None},
        )
        ChangeLogService.log(
            action="PARTICIPANT_CREATED",
            entity_type="participant",
            entity_id=participant.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after=snapshot(participant, PARTICIPANT_FIELDS),
        )
        logger.info("Participant created id=%s tenant=%s", participant.id, tenant_id)
        return participant

    @staticmethod
    @transaction.atomic
    def update_participant(
        *,
        tenant_id: UUID,
        participant_id: UUID,
        actor_user_id: int | None,
        changes: dict[str, Any],
    ) -> Participant:
        participant = ParticipantSelector.get_participant(tenant_id=tenant_id, participant_id=participant_id)
        before = snapshot(participant, PARTICIPANT_FIELDS)

        if changes.get("primary_site_id"):
            SiteSelector.get_site(tenant_id=tenant_id, site_id=changes["primary_site_id"])

        update_fields = _apply_changes(participant, changes, PARTICIPANT_FIELDS)
        if update_fields:
            _touch_updated_at(participant, update_fields)
            participant.save(update_fields=update_fields)
            ChangeLogService.log(
                action="PARTICIPANT_UPDATED",
                entity_type="participant",
                entity_id=participant.id,
                tenant_id=tenant_id,
                actor_user_id=actor_user_id,
                before=before,
                after=snapshot(participant, PARTICIPANT_FIELDS),
            )
        return participant

    @staticmethod
    def deactivate_participant(*, tenant_id: UUID, participant_id: UUID, actor_user_id: int | None) -> Participant:
        return SiteService.update_participant(
            tenant_id=tenant_id,
            participant_id=participant_id,
            actor_user_id=actor_user_id,
            changes={"status": RecordStatus.INACTIVE},
        )


class StaffAssignmentService:
    """
    Staff <-> site / participant assignments.
    Uniqueness is enforced by the DB; a duplicate is a 409.
    """

    @staticmethod
    def _require_member(*, tenant_id: UUID, user_id: int) -> None:
        if not CompanyMembership.objects.filter(company_id=tenant_id, user_id=user_id, is_active=True).exists():
            raise NotFound("User not found.")

    @staticmethod
    @transaction.atomic
    def assign_site(*, tenant_id: UUID, user_id: int, site_id: UUID, actor_user_id: int | None) -> StaffSiteAssignment:
        StaffAssignmentService._require_member(tenant_id=tenant_id, user_id=user_id)
        site = SiteSelector.get_site(tenant_id=tenant_id, site_id=site_id)

        try:
            with transaction.atomic(savepoint=True):
                assignment = StaffSiteAssignment.objects.create(tenant_id=tenant_id, user_id=user_id, site=site)
        except IntegrityError:
            logger.warning("Duplicate staff site assignment user=%s site=%s", user_id, site_id)
            raise ConflictError("Assignment already exists.")

        ChangeLogService.log(
            action="STAFF_SITE_ASSIGNED",
            entity_type="staff_site_assignment",
            entity_id=assignment.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={"user_id": user_id, "site_id": str(site.id)},
        )
        return assignment

    @staticmethod
    @transaction.atomic
    def assign_participant(
        *,
        tenant_id: UUID,
        user_id: int,
        participant_id: UUID,
        actor_user_id: int | None,
    ) -> StaffParticipantAssignment:
        StaffAssignmentService._require_member(tenant_id=tenant_id, user_id=user_id)
        participant = ParticipantSelector.get_participant(tenant_id=tenant_id, participant_id=participant_id)

        try:
            with transaction.atomic(savepoint=True):
                assignment = StaffParticipantAssignment.objects.create(
                    tenant_id=tenant_id,
                    user_id=user_id,
                    participant=participant,
                )
        except IntegrityError:
            logger.warning("Duplicate staff participant assignment user=%s participant=%s", user_id, participant_id)
            raise ConflictError("Assignment already exists.")

        ChangeLogService.log(
            action="STAFF_PARTICIPANT_ASSIGNED",
            entity_type="staff_participant_assignment",
            entity_id=assignment.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={"user_id": user_id, "participant_id": str(participant.id)},
        )
        return assignment

    @staticmethod
    @transaction.atomic
    def remove_site_assignment(*, tenant_id: UUID, assignment_id: UUID, actor_user_id: int | None) -> None:
        assignment = StaffSiteAssignment.objects.filter(tenant_id=tenant_id, id=assignment_id).first()
        if assignment is None:
            raise AssignmentSelector.NotFound()

        before = {"user_id": assignment.user_id, "site_id": str(assignment.site_id)}
        assignment.delete()
        ChangeLogService.log(
            action="STAFF_SITE_UNASSIGNED",
            entity_type="staff_site_assignment",
            entity_id=assignment_id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before=before,
        )

    @staticmethod
    @transaction.atomic
    def remove_participant_assignment(*, tenant_id: UUID, assignment_id: UUID, actor_user_id: int | None) -> None:
        assignment = StaffParticipantAssignment.objects.filter(tenant_id=tenant_id, id=assignment_id).first()
        if assignment is None:
            raise AssignmentSelector.NotFound()

        before = {"user_id": assignment.user_id, "participant_id": str(assignment.participant_id)}
        assignment.delete()
        ChangeLogService.log(
            action="STAFF_PARTICIPANT_UNASSIGNED",
            entity_type="staff_participant_assignment",
            entity_id=assignment_id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before=before,
        )


class ParticipantPlacementService:
    """
    Time-bounded participant <-> site placements.
    """

    @staticmethod
    @transaction.atomic
    def assign(
        *,
        tenant_id: UUID,
        participant_id: UUID,
        site_id: UUID,
        start_date: date,
        end_date: Optional[date] = None,
        is_primary: bool = False,
        actor_user_id: int | None,
    ) -> ParticipantSiteAssignment:
        participant = ParticipantSelector.get_participant(tenant_id=tenant_id, participant_id=participant_id)
        site = SiteSelector.get_site(tenant_id=tenant_id, site_id=site_id)

        if end_date is not None and end_date < start_date:
            raise ValidationError({"end_date": "End date must be on or after the start date."})

        placement = ParticipantSiteAssignment.objects.create(
            tenant_id=tenant_id,
            participant=participant,
            site=site,
            start_date=start_date,
            end_date=end_date,
            is_primary=is_primary,
        )

        ChangeLogService.log(
            action="PARTICIPANT_SITE_ASSIGNED",
            entity_type="participant_site_assignment",
            entity_id=placement.id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            after={
                "participant_id": str(participant.id),
                "site_id": str(site.id),
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat() if end_date else None,
                "is_primary": is_primary,
            },
        )
        logger.info("Participant placed participant=%s site=%s tenant=%s", participant.id, site.id, tenant_id)
        return placement

    @staticmethod
    @transaction.atomic
    def remove(*, tenant_id: UUID, assignment_id: UUID, actor_user_id: int | None) -> None:
        placement = ParticipantSiteAssignment.objects.filter(tenant_id=tenant_id, id=assignment_id).first()
        if placement is None:
            raise AssignmentSelector.NotFound()

        before = {"participant_id": str(placement.participant_id), "site_id": str(placement.site_id)}
        placement.delete()
        ChangeLogService.log(
            action="PARTICIPANT_SITE_UNASSIGNED",
            entity_type="participant_site_assignment",
            entity_id=assignment_id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before=before,
        )
