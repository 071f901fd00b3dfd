# ndis_core/sites/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.exceptions import PermissionDenied, ValidationError as DRFValidationError
from rest_framework.response import Response

from ndis_core.common.api.pagination import paginate
from ndis_core.common.permissions import (
    ParticipantSiteAssignmentPermission,
    SitePermission,
    StaffAssignmentPermission,
    request_role,
)
from ndis_core.common.scope import require_scope
from ndis_core.iam.capabilities import ResourceScope, can_act_on_resource
from ndis_core.sites.api.serializers import (
    ParticipantCreateSerializer,
    ParticipantSerializer,
    ParticipantSiteAssignmentCreateSerializer,
    ParticipantSiteAssignmentSerializer,
    ParticipantUpdateSerializer,
    StaffParticipantAssignmentCreateSerializer,
    StaffParticipantAssignmentSerializer,
    StaffSiteAssignmentCreateSerializer,
    StaffSiteAssignmentSerializer,
    WorkSiteCreateSerializer,
    WorkSiteSerializer,
    WorkSiteUpdateSerializer,
)
from ndis_core.sites.models import (
    Participant,
    ParticipantSiteAssignment,
    StaffParticipantAssignment,
    StaffSiteAssignment,
    WorkSite,
)
from ndis_core.sites.selectors import AssignmentSelector, ParticipantSelector, SiteSelector, assignment_set
from ndis_core.sites.services import ParticipantPlacementService, SiteService, StaffAssignmentService


def _uuid_or_none(value: str | None, field_name: str) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise DRFValidationError({field_name: "Invalid UUID"})


def _int_or_none(value: str | None, field_name: str) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise DRFValidationError({field_name: "Invalid integer"})


def _ensure_can_see(request, tenant_id: UUID, resource: ResourceScope) -> None:
    allowed = can_act_on_resource(
        role=request_role(request),
        resource=resource,
        assignments=assignment_set(tenant_id=tenant_id, user_id=request.user.id),
        actor_user_id=request.user.id,
    )
    if not allowed:
        raise PermissionDenied("You are not assigned to this record.")


class WorkSiteViewSet(viewsets.GenericViewSet):
    """
    Work sites. StaffReadOnly only sees sites they are assigned to.
    DELETE deactivates.
    """
    permission_classes = [SitePermission]

    serializer_class = WorkSiteSerializer
    queryset = WorkSite.objects.none()

    @extend_schema(
        tags=["Sites"],
        responses={200: WorkSiteSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = SiteSelector.list_sites(
            tenant_id=scope.tenant_id,
            role=request_role(request),
            user_id=request.user.id,
            status=request.query_params.get("status") or None,
        )
        return paginate(request, qs, WorkSiteSerializer)

    @extend_schema(tags=["Sites"], responses={200: WorkSiteSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        site = SiteSelector.get_site(tenant_id=scope.tenant_id, site_id=_uuid_or_none(pk, "id"))
        _ensure_can_see(request, scope.tenant_id, ResourceScope(site_id=site.id))
        return Response(WorkSiteSerializer(site).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Sites"], request=WorkSiteCreateSerializer, responses={201: WorkSiteSerializer})
    def create(self, request):
        scope = require_scope(request)
        ser = WorkSiteCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        site = SiteService.create_site(tenant_id=scope.tenant_id, actor_user_id=request.user.id, **ser.validated_data)
        return Response(WorkSiteSerializer(site).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Sites"], request=WorkSiteUpdateSerializer, responses={200: WorkSiteSerializer})
    def partial_update(self, request, pk=None):
        scope = require_scope(request)
        ser = WorkSiteUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        site = SiteService.update_site(
            tenant_id=scope.tenant_id,
            site_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
            changes=dict(ser.validated_data),
        )
        return Response(WorkSiteSerializer(site).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Sites"], responses={200: WorkSiteSerializer})
    def destroy(self, request, pk=None):
        scope = require_scope(request)
        site = SiteService.deactivate_site(
            tenant_id=scope.tenant_id,
            site_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
        )
        return Response(WorkSiteSerializer(site).data, status=status.HTTP_200_OK)


class ParticipantViewSet(viewsets.GenericViewSet):
    """
    Participants. StaffReadOnly only sees participants assigned to them
    directly or living at an assigned site. DELETE deactivates.
    """
    permission_classes = [SitePermission]

    serializer_class = ParticipantSerializer
    queryset = Participant.objects.none()

    @extend_schema(
        tags=["Sites"],
        responses={200: ParticipantSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="site", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False,
                             description="Filter by primary site."),
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = ParticipantSelector.list_participants(
            tenant_id=scope.tenant_id,
            role=request_role(request),
            user_id=request.user.id,
            site_id=_uuid_or_none(request.query_params.get("site"), "site"),
            status=request.query_params.get("status") or None,
        )
        return paginate(request, qs, ParticipantSerializer)

    @extend_schema(tags=["Sites"], responses={200: ParticipantSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        participant = ParticipantSelector.get_participant(
            tenant_id=scope.tenant_id,
            participant_id=_uuid_or_none(pk, "id"),
        )
        _ensure_can_see(
            request,
            scope.tenant_id,
            ResourceScope(site_id=participant.primary_site_id, participant_id=participant.id),
        )
        return Response(ParticipantSerializer(participant).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Sites"], request=ParticipantCreateSerializer, responses={201: ParticipantSerializer})
    def create(self, request):
        scope = require_scope(request)
        ser = ParticipantCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        participant = SiteService.create_participant(
            tenant_id=scope.tenant_id,
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(ParticipantSerializer(participant).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Sites"], request=ParticipantUpdateSerializer, responses={200: ParticipantSerializer})
    def partial_update(self, request, pk=None):
        scope = require_scope(request)
        ser = ParticipantUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        participant = SiteService.update_participant(
            tenant_id=scope.tenant_id,
            participant_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
            changes=dict(ser.validated_data),
        )
        return Response(ParticipantSerializer(participant).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Sites"], responses={200: ParticipantSerializer})
    def destroy(self, request, pk=None):
        scope = require_scope(request)
        participant = SiteService.deactivate_participant(
            tenant_id=scope.tenant_id,
            participant_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
        )
        return Response(ParticipantSerializer(participant).data, status=status.HTTP_200_OK)


class StaffSiteAssignmentViewSet(viewsets.GenericViewSet):
    permission_classes = [StaffAssignmentPermission]

    serializer_class = StaffSiteAssignmentSerializer
    queryset = StaffSiteAssignment.objects.none()

    @extend_schema(
        tags=["Sites"],
        responses={200: StaffSiteAssignmentSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="user_id", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="site", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = AssignmentSelector.site_assignments(
            tenant_id=scope.tenant_id,
            user_id=_int_or_none(request.query_params.get("user_id"), "user_id"),
            site_id=_uuid_or_none(request.query_params.get("site"), "site"),
        )
        return paginate(request, qs, StaffSiteAssignmentSerializer)

    @extend_schema(
        tags=["Sites"],
        request=StaffSiteAssignmentCreateSerializer,
        responses={201: StaffSiteAssignmentSerializer},
    )
    def create(self, request):
        scope = require_scope(request)
        ser = StaffSiteAssignmentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        assignment = StaffAssignmentService.assign_site(
            tenant_id=scope.tenant_id,
            user_id=ser.validated_data["user_id"],
            site_id=ser.validated_data["site_id"],
            actor_user_id=request.user.id,
        )
        return Response(StaffSiteAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Sites"], responses={204: None})
    def destroy(self, request, pk=None):
        scope = require_scope(request)
        StaffAssignmentService.remove_site_assignment(
            tenant_id=scope.tenant_id,
            assignment_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class StaffParticipantAssignmentViewSet(viewsets.GenericViewSet):
    permission_classes = [StaffAssignmentPermission]

    serializer_class = StaffParticipantAssignmentSerializer
    queryset = StaffParticipantAssignment.objects.none()

    @extend_schema(
        tags=["Sites"],
        responses={200: StaffParticipantAssignmentSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="user_id", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="participant", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = AssignmentSelector.participant_assignments(
            tenant_id=scope.tenant_id,
            user_id=_int_or_none(request.query_params.get("user_id"), "user_id"),
            participant_id=_uuid_or_none(request.query_params.get("participant"), "participant"),
        )
        return paginate(request, qs, StaffParticipantAssignmentSerializer)

    @extend_schema(
        tags=["Sites"],
        request=StaffParticipantAssignmentCreateSerializer,
        responses={201: StaffParticipantAssignmentSerializer},
    )
    def create(self, request):
        scope = require_scope(request)
        ser = StaffParticipantAssignmentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        assignment = StaffAssignmentService.assign_participant(
            tenant_id=scope.tenant_id,
            user_id=ser.validated_data["user_id"],
            participant_id=ser.validated_data["participant_id"],
            actor_user_id=request.user.id,
        )
        return Response(StaffParticipantAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Sites"], responses={204: None})
    def destroy(self, request, pk=None):
        scope = require_scope(request)
        StaffAssignmentService.remove_participant_assignment(
            tenant_id=scope.tenant_id,
            assignment_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class ParticipantSiteAssignmentViewSet(viewsets.GenericViewSet):
    """
    Participant placements at sites (start/end dates, primary flag).
    StaffReadOnly only sees placements of records they are assigned to.
    """
    permission_classes = [ParticipantSiteAssignmentPermission]

    serializer_class = ParticipantSiteAssignmentSerializer
    queryset = ParticipantSiteAssignment.objects.none()

    @extend_schema(
        tags=["Sites"],
        responses={200: ParticipantSiteAssignmentSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="participant", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="site", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = AssignmentSelector.participant_sites(
            tenant_id=scope.tenant_id,
            role=request_role(request),
            user_id=request.user.id,
            participant_id=_uuid_or_none(request.query_params.get("participant"), "participant"),
            site_id=_uuid_or_none(request.query_params.get("site"), "site"),
        )
        return paginate(request, qs, ParticipantSiteAssignmentSerializer)

    @extend_schema(
        tags=["Sites"],
        request=ParticipantSiteAssignmentCreateSerializer,
        responses={201: ParticipantSiteAssignmentSerializer},
    )
    def create(self, request):
        scope = require_scope(request)
        ser = ParticipantSiteAssignmentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        placement = ParticipantPlacementService.assign(
            tenant_id=scope.tenant_id,
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(ParticipantSiteAssignmentSerializer(placement).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Sites"], responses={204: None})
    def destroy(self, request, pk=None):
        scope = require_scope(request)
        ParticipantPlacementService.remove(
            tenant_id=scope.tenant_id,
            assignment_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
