# ndis_core/sites/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.db.models import Q, QuerySet
from rest_framework import exceptions

from ndis_core.iam.capabilities import AssignmentSet, is_assignment_restricted
from ndis_core.sites.models import (
    Participant,
    ParticipantSiteAssignment,
    StaffParticipantAssignment,
    StaffSiteAssignment,
    WorkSite,
)


def assignment_set(*, tenant_id: UUID, user_id: int | None) -> AssignmentSet:
    """
    Sites + participants the user is assigned to in this company.
    """
    if not user_id:
        return AssignmentSet()

    site_ids = StaffSiteAssignment.objects.filter(tenant_id=tenant_id, user_id=user_id).values_list("site_id", flat=True)
    participant_ids = StaffParticipantAssignment.objects.filter(tenant_id=tenant_id, user_id=user_id).values_list(
        "participant_id", flat=True
    )
    return AssignmentSet(site_ids=frozenset(site_ids), participant_ids=frozenset(participant_ids))


class SiteSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Work site not found."

    @staticmethod
    def get_site(*, tenant_id: UUID, site_id: UUID) -> WorkSite:
        try:
            return WorkSite.objects.get(id=site_id, tenant_id=tenant_id)
        except WorkSite.DoesNotExist:
            raise SiteSelector.NotFound()

    @staticmethod
    def list_sites(
        *,
        tenant_id: UUID,
        role: str | None,
        user_id: int | None,
        status: Optional[str] = None,
    ) -> QuerySet[WorkSite]:
        qs = WorkSite.objects.filter(tenant_id=tenant_id)
        if status:
            qs = qs.filter(status=status)

        # StaffReadOnly only sees assigned sites
        if is_assignment_restricted(role):
            assigned = assignment_set(tenant_id=tenant_id, user_id=user_id)
            qs = qs.filter(id__in=assigned.site_ids)

        return qs.order_by("name")


class ParticipantSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Participant not found."

    @staticmethod
    def get_participant(*, tenant_id: UUID, participant_id: UUID) -> Participant:
        try:
            return Participant.objects.select_related("primary_site").get(id=participant_id, tenant_id=tenant_id)
        except Participant.DoesNotExist:
            raise ParticipantSelector.NotFound()

    @staticmethod
    def list_participants(
        *,
        tenant_id: UUID,
        role: str | None,
        user_id: int | None,
        site_id: Optional[UUID] = None,
        status: Optional[str] = None,
    ) -> QuerySet[Participant]:
        qs = Participant.objects.filter(tenant_id=tenant_id).select_related("primary_site")
        if site_id:
            qs = qs.filter(primary_site_id=site_id)
        if status:
            qs = qs.filter(status=status)

        # StaffReadOnly: directly assigned participants, or living at an assigned site
        if is_assignment_restricted(role):
            assigned = assignment_set(tenant_id=tenant_id, user_id=user_id)
            qs = qs.filter(Q(id__in=assigned.participant_ids) | Q(primary_site_id__in=assigned.site_ids))

        return qs.order_by("last_name", "first_name")


class AssignmentSelector:
    class NotFound(exceptions.NotFound):
        default_detail = "Assignment not found."

    @staticmethod
    def site_assignments(*, tenant_id: UUID, user_id: int | None = None, site_id: UUID | None = None):
        qs = StaffSiteAssignment.objects.filter(tenant_id=tenant_id).select_related("site", "user")
        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        if site_id:
            qs = qs.filter(site_id=site_id)
        return qs.order_by("-created_at")

    @staticmethod
    def participant_assignments(*, tenant_id: UUID, user_id: int | None = None, participant_id: UUID | None = None):
        qs = StaffParticipantAssignment.objects.filter(tenant_id=tenant_id).select_related("participant", "user")
        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        if participant_id:
            qs = qs.filter(participant_id=participant_id)
        return qs.order_by("-created_at")

    @staticmethod
    def participant_sites(
        *,
        tenant_id: UUID,
        role: str | None,
        user_id: int | None,
        participant_id: UUID | None = None,
        site_id: UUID | None = None,
    ) -> QuerySet[ParticipantSiteAssignment]:
        qs = ParticipantSiteAssignment.objects.filter(tenant_id=tenant_id).select_related("participant", "site")
        if participant_id:
            qs = qs.filter(participant_id=participant_id)
        if site_id:
            qs = qs.filter(site_id=site_id)

        if is_assignment_restricted(role):
            assigned = assignment_set(tenant_id=tenant_id, user_id=user_id)
            qs = qs.filter(Q(participant_id__in=assigned.participant_ids) | Q(site_id__in=assigned.site_ids))

        return qs.order_by("-start_date", "-created_at")
