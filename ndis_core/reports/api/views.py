# ndis_core/reports/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response

from ndis_core.common.api.pagination import paginate
from ndis_core.common.permissions import WeeklyReportPermission
from ndis_core.common.scope import require_scope
from ndis_core.reports.api.serializers import (
    WeeklyReportGenerateSerializer,
    WeeklyReportSerializer,
    WeeklyReportUpdateSerializer,
)
from ndis_core.reports.models import WeeklyComplianceReport
from ndis_core.reports.selectors import WeeklyReportSelector
from ndis_core.reports.services import WeeklyReportService


def _uuid_or_none(value: str | None, field_name: str) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise DRFValidationError({field_name: "Invalid UUID"})


class WeeklyReportViewSet(viewsets.GenericViewSet):
    """
    Weekly participant narratives. Generation calls the text-generation
    provider synchronously; a provider failure is a 502.
    """
    permission_classes = [WeeklyReportPermission]

    serializer_class = WeeklyReportSerializer
    queryset = WeeklyComplianceReport.objects.none()

    @extend_schema(
        tags=["Weekly reports"],
        responses={200: WeeklyReportSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="participant", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="period_start", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="period_end", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="report_status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = WeeklyReportSelector.list_reports(tenant_id=scope.tenant_id, params=request.query_params)
        return paginate(request, qs, WeeklyReportSerializer)

    @extend_schema(tags=["Weekly reports"], responses={200: WeeklyReportSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        report = WeeklyReportSelector.get_report(tenant_id=scope.tenant_id, report_id=_uuid_or_none(pk, "id"))
        return Response(WeeklyReportSerializer(report).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Weekly reports"], request=WeeklyReportUpdateSerializer, responses={200: WeeklyReportSerializer})
    def partial_update(self, request, pk=None):
        scope = require_scope(request)
        ser = WeeklyReportUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        report = WeeklyReportService.update_report(
            tenant_id=scope.tenant_id,
            report_id=_uuid_or_none(pk, "id"),
            changes=dict(ser.validated_data),
            actor_user_id=request.user.id,
        )
        return Response(WeeklyReportSerializer(report).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Weekly reports"], request=WeeklyReportGenerateSerializer, responses={201: WeeklyReportSerializer})
    @action(detail=False, methods=["post"], url_path="generate")
    def generate(self, request):
        scope = require_scope(request)
        ser = WeeklyReportGenerateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        report = WeeklyReportService.generate_weekly_report(
            tenant_id=scope.tenant_id,
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(WeeklyReportSerializer(report).data, status=status.HTTP_201_CREATED)
