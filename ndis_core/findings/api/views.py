# ndis_core/findings/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response

from ndis_core.common.api.pagination import paginate
from ndis_core.common.permissions import EvidencePermission, FindingPermission, request_role
from ndis_core.common.scope import require_scope
from ndis_core.findings.api.serializers import (
    EvidenceItemSerializer,
    EvidenceRequestCreateSerializer,
    EvidenceRequestDetailSerializer,
    EvidenceRequestSerializer,
    EvidenceReviewSerializer,
    EvidenceSubmitSerializer,
    FindingSerializer,
    FindingUpdateSerializer,
    RequestEvidenceSerializer,
)
from ndis_core.findings.models import EvidenceRequest, Finding
from ndis_core.findings.selectors import EvidenceSelector, FindingSelector
from ndis_core.findings.services import EvidenceService, FindingService


def _uuid_or_none(value: str | None, field_name: str) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise DRFValidationError({field_name: "Invalid UUID"})


class FindingViewSet(viewsets.GenericViewSet):
    """
    Findings are created by the response processor, never directly.
    """
    permission_classes = [FindingPermission]

    serializer_class = FindingSerializer
    queryset = Finding.objects.none()

    @extend_schema(
        tags=["Findings"],
        responses={200: FindingSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="severity", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="audit", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = FindingSelector.list_findings(tenant_id=scope.tenant_id, params=request.query_params)
        return paginate(request, qs, FindingSerializer)

    @extend_schema(tags=["Findings"], responses={200: FindingSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        finding = FindingSelector.get_finding(tenant_id=scope.tenant_id, finding_id=_uuid_or_none(pk, "id"))
        return Response(FindingSerializer(finding).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Findings"], request=FindingUpdateSerializer, responses={200: FindingSerializer})
    def partial_update(self, request, pk=None):
        scope = require_scope(request)
        ser = FindingUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        finding = FindingService.update_finding(
            tenant_id=scope.tenant_id,
            finding_id=_uuid_or_none(pk, "id"),
            changes=dict(ser.validated_data),
            actor_user_id=request.user.id,
            actor_role=request_role(request),
        )
        return Response(FindingSerializer(finding).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Findings"], request=RequestEvidenceSerializer, responses={201: EvidenceRequestSerializer})
    @action(detail=True, methods=["post"], url_path="request-evidence")
    def request_evidence(self, request, pk=None):
        scope = require_scope(request)
        ser = RequestEvidenceSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        evidence_request = EvidenceService.request_evidence(
            tenant_id=scope.tenant_id,
            finding_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(EvidenceRequestSerializer(evidence_request).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Findings"], responses={200: EvidenceRequestDetailSerializer(many=True)})
    @action(detail=True, methods=["get"], url_path="evidence")
    def evidence(self, request, pk=None):
        scope = require_scope(request)
        finding = FindingSelector.get_finding(tenant_id=scope.tenant_id, finding_id=_uuid_or_none(pk, "id"))
        qs = EvidenceSelector.list_requests(tenant_id=scope.tenant_id, finding_id=finding.id)
        return Response(EvidenceRequestDetailSerializer(qs, many=True).data, status=status.HTTP_200_OK)


class EvidenceRequestViewSet(viewsets.GenericViewSet):
    """
    Evidence requests: REQUESTED -> SUBMITTED -> (UNDER_REVIEW) -> ACCEPTED | REJECTED.
    """
    permission_classes = [EvidencePermission]

    serializer_class = EvidenceRequestSerializer
    queryset = EvidenceRequest.objects.none()

    @extend_schema(
        tags=["Evidence"],
        responses={200: EvidenceRequestSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="audit", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="finding", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = EvidenceSelector.list_requests(tenant_id=scope.tenant_id, params=request.query_params)
        return paginate(request, qs, EvidenceRequestSerializer)

    @extend_schema(tags=["Evidence"], request=EvidenceRequestCreateSerializer, responses={201: EvidenceRequestSerializer})
    def create(self, request):
        scope = require_scope(request)
        ser = EvidenceRequestCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        evidence_request = EvidenceService.create_request(
            tenant_id=scope.tenant_id,
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(EvidenceRequestSerializer(evidence_request).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Evidence"], responses={200: EvidenceRequestDetailSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        evidence_request = EvidenceSelector.get_request(tenant_id=scope.tenant_id, request_id=_uuid_or_none(pk, "id"))
        return Response(EvidenceRequestDetailSerializer(evidence_request).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Evidence"], request=EvidenceSubmitSerializer, responses={201: EvidenceItemSerializer})
    @action(detail=True, methods=["post"], url_path="submit")
    def submit(self, request, pk=None):
        scope = require_scope(request)
        ser = EvidenceSubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        item = EvidenceService.submit_evidence(
            tenant_id=scope.tenant_id,
            request_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(EvidenceItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Evidence"], request=None, responses={200: EvidenceRequestSerializer})
    @action(detail=True, methods=["post"], url_path="start-review")
    def start_review(self, request, pk=None):
        scope = require_scope(request)
        evidence_request = EvidenceService.start_review(
            tenant_id=scope.tenant_id,
            request_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
        )
        return Response(EvidenceRequestSerializer(evidence_request).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Evidence"], request=EvidenceReviewSerializer, responses={200: EvidenceRequestSerializer})
    @action(detail=True, methods=["post"], url_path="review")
    def review(self, request, pk=None):
        scope = require_scope(request)
        ser = EvidenceReviewSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        evidence_request = EvidenceService.review_evidence(
            tenant_id=scope.tenant_id,
            request_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(EvidenceRequestSerializer(evidence_request).data, status=status.HTTP_200_OK)
