# ndis_core/audits/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response

from ndis_core.audits.api.serializers import (
    AuditCloseSerializer,
    AuditCreateSerializer,
    AuditDetailSerializer,
    AuditDomainsUpdateSerializer,
    AuditOutcomeSerializer,
    AuditRunnerSerializer,
    AuditScopeDomainSerializer,
    AuditScopeUpdateSerializer,
    AuditSerializer,
    AuditSummarySerializer,
    AuditTemplateCreateSerializer,
    AuditTemplateDetailSerializer,
    AuditTemplateIndicatorCreateSerializer,
    AuditTemplateIndicatorSerializer,
    AuditTemplateSelectSerializer,
    AuditTemplateSerializer,
    IndicatorResponseInputSerializer,
    IndicatorResponseSerializer,
    InReviewResponseInputSerializer,
)
from ndis_core.audits.models import Audit, AuditIndicatorResponse, AuditTemplate, IndicatorRating
from ndis_core.audits.responses import IndicatorResponseService
from ndis_core.audits.selectors import AuditSelector, AuditTemplateSelector
from ndis_core.audits.services import AuditService, AuditTemplateService
from ndis_core.common.api.pagination import DefaultPagination, paginate
from ndis_core.common.permissions import AuditOutcomePermission, AuditPermission, AuditTemplatePermission
from ndis_core.common.scope import require_scope
from ndis_core.findings.api.serializers import (
    EvidenceRequestCreateSerializer,
    EvidenceRequestDetailSerializer,
    EvidenceRequestSerializer,
)
from ndis_core.findings.selectors import EvidenceSelector
from ndis_core.findings.services import EvidenceService


def _uuid_or_none(value: str | None, field_name: str) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise DRFValidationError({field_name: "Invalid UUID"})


class AuditViewSet(viewsets.GenericViewSet):
    """
    Audit lifecycle endpoints:
      DRAFT -> start -> IN_PROGRESS -> submit -> IN_REVIEW -> close -> CLOSED
    """
    permission_classes = [AuditPermission]

    serializer_class = AuditSerializer
    queryset = Audit.objects.none()

    def _detail_response(self, tenant_id: UUID, audit_id: UUID, http_status=status.HTTP_200_OK) -> Response:
        audit = (
            Audit.objects.select_related("run", "run__template")
            .prefetch_related("scope_line_items__line_item__category", "scope_domains__domain")
            .get(id=audit_id, tenant_id=tenant_id)
        )
        return Response(AuditDetailSerializer(audit).data, status=http_status)

    # -------------------------
    # Collection
    # -------------------------
    @extend_schema(
        tags=["Audits"],
        responses={200: AuditSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="audit_type", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = AuditSelector.list_audits(
            tenant_id=scope.tenant_id,
            status=request.query_params.get("status") or None,
            audit_type=request.query_params.get("audit_type") or None,
        )

        # progress is computed per page, not per row
        paginator = DefaultPagination()
        page = paginator.paginate_queryset(qs, request)
        rows = page if page is not None else list(qs)
        data = AuditSerializer(rows, many=True, context={"progress": AuditSelector.progress_for(rows)}).data
        if page is not None:
            return paginator.get_paginated_response(data)
        return Response(data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Audits"], request=AuditCreateSerializer, responses={201: AuditDetailSerializer})
    def create(self, request):
        scope = require_scope(request)
        ser = AuditCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        audit = AuditService.create_audit(
            tenant_id=scope.tenant_id,
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return self._detail_response(scope.tenant_id, audit.id, status.HTTP_201_CREATED)

    @extend_schema(tags=["Audits"], responses={200: AuditDetailSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        audit = AuditSelector.get_audit(tenant_id=scope.tenant_id, audit_id=_uuid_or_none(pk, "id"))
        return self._detail_response(scope.tenant_id, audit.id)

    # -------------------------
    # Scope / domains / template
    # -------------------------
    @extend_schema(tags=["Audits"], request=AuditScopeUpdateSerializer, responses={200: AuditDetailSerializer})
    @action(detail=True, methods=["put"], url_path="scope")
    def scope(self, request, pk=None):
        scope = require_scope(request)
        ser = AuditScopeUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        audit = AuditService.update_scope(
            tenant_id=scope.tenant_id,
            audit_id=_uuid_or_none(pk, "id"),
            line_item_ids=ser.validated_data["line_item_ids"],
            actor_user_id=request.user.id,
        )
        return self._detail_response(scope.tenant_id, audit.id)

    @extend_schema(tags=["Audits"], responses={200: AuditScopeDomainSerializer(many=True)})
    @action(detail=True, methods=["get"], url_path="domains")
    def domains(self, request, pk=None):
        scope = require_scope(request)
        audit = AuditSelector.get_audit(tenant_id=scope.tenant_id, audit_id=_uuid_or_none(pk, "id"))
        return Response(
            AuditScopeDomainSerializer(AuditSelector.scope_domains(audit=audit), many=True).data,
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        tags=["Audits"],
        request=AuditDomainsUpdateSerializer,
        responses={200: AuditScopeDomainSerializer(many=True)},
    )
    @domains.mapping.put
    def update_domains(self, request, pk=None):
        scope = require_scope(request)
        ser = AuditDomainsUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        audit = AuditService.update_domains(
            tenant_id=scope.tenant_id,
            audit_id=_uuid_or_none(pk, "id"),
            domain_ids=ser.validated_data["domain_ids"],
            actor_user_id=request.user.id,
        )
        return Response(
            AuditScopeDomainSerializer(AuditSelector.scope_domains(audit=audit), many=True).data,
            status=status.HTTP_200_OK,
        )

    @extend_schema(tags=["Audits"], request=AuditTemplateSelectSerializer, responses={200: AuditDetailSerializer})
    @action(detail=True, methods=["put"], url_path="template")
    def template(self, request, pk=None):
        scope = require_scope(request)
        ser = AuditTemplateSelectSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        run = AuditService.select_template(
            tenant_id=scope.tenant_id,
            audit_id=_uuid_or_none(pk, "id"),
            template_id=ser.validated_data["template_id"],
            actor_user_id=request.user.id,
        )
        return self._detail_response(scope.tenant_id, run.audit_id)

    # -------------------------
    # Transitions
    # -------------------------
    @extend_schema(tags=["Audits"], request=None, responses={200: AuditDetailSerializer})
    @action(detail=True, methods=["post"], url_path="start")
    def start(self, request, pk=None):
        scope = require_scope(request)
        audit = AuditService.start(tenant_id=scope.tenant_id, audit_id=_uuid_or_none(pk, "id"), actor_user_id=request.user.id)
        return self._detail_response(scope.tenant_id, audit.id)

    @extend_schema(tags=["Audits"], request=None, responses={200: AuditDetailSerializer})
    @action(detail=True, methods=["post"], url_path="submit")
    def submit(self, request, pk=None):
        scope = require_scope(request)
        audit = AuditService.submit_for_review(
            tenant_id=scope.tenant_id,
            audit_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
        )
        return self._detail_response(scope.tenant_id, audit.id)

    @extend_schema(tags=["Audits"], request=AuditCloseSerializer, responses={200: AuditDetailSerializer})
    @action(detail=True, methods=["post"], url_path="close")
    def close(self, request, pk=None):
        scope = require_scope(request)
        ser = AuditCloseSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        audit = AuditService.close(
            tenant_id=scope.tenant_id,
            audit_id=_uuid_or_none(pk, "id"),
            close_reason=ser.validated_data.get("close_reason", ""),
            actor_user_id=request.user.id,
        )
        return self._detail_response(scope.tenant_id, audit.id)

    # -------------------------
    # Runner / responses
    # -------------------------
    @extend_schema(tags=["Audits"], responses={200: AuditRunnerSerializer})
    @action(detail=True, methods=["get"], url_path="runner")
    def runner(self, request, pk=None):
        scope = require_scope(request)
        data = AuditSelector.runner(tenant_id=scope.tenant_id, audit_id=_uuid_or_none(pk, "id"))
        data["template"].indicator_count = len(data["indicators"])
        ctx = {"progress": AuditSelector.progress_for([data["audit"]])}
        return Response(AuditRunnerSerializer(data, context=ctx).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Audits"], responses={200: AuditSummarySerializer})
    @action(detail=True, methods=["get"], url_path="summary")
    def summary(self, request, pk=None):
        scope = require_scope(request)
        data = AuditSelector.summary(tenant_id=scope.tenant_id, audit_id=_uuid_or_none(pk, "id"))
        return Response(AuditSummarySerializer(data).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Audits"],
        request=IndicatorResponseInputSerializer,
        responses={200: IndicatorResponseSerializer},
        parameters=[
            OpenApiParameter(name="indicator_id", type=OpenApiTypes.UUID, location=OpenApiParameter.PATH, required=True),
        ],
    )
    @action(detail=True, methods=["put"], url_path=r"responses/(?P<indicator_id>[^/.]+)")
    def responses(self, request, pk=None, indicator_id=None):
        scope = require_scope(request)
        ser = IndicatorResponseInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        response = IndicatorResponseService.save_response(
            tenant_id=scope.tenant_id,
            audit_id=_uuid_or_none(pk, "id"),
            indicator_id=_uuid_or_none(indicator_id, "indicator_id"),
            rating=ser.validated_data["rating"],
            comment=ser.validated_data.get("comment", ""),
            actor_user_id=request.user.id,
        )
        return Response(IndicatorResponseSerializer(response).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Audits"], request=InReviewResponseInputSerializer, responses={201: IndicatorResponseSerializer})
    @action(detail=True, methods=["post"], url_path="in-review-responses")
    def in_review_responses(self, request, pk=None):
        scope = require_scope(request)
        ser = InReviewResponseInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        response = IndicatorResponseService.add_in_review_response(
            tenant_id=scope.tenant_id,
            audit_id=_uuid_or_none(pk, "id"),
            indicator_id=ser.validated_data["indicator_id"],
            rating=ser.validated_data["rating"],
            comment=ser.validated_data.get("comment", ""),
            actor_user_id=request.user.id,
        )
        return Response(IndicatorResponseSerializer(response).data, status=status.HTTP_201_CREATED)

    # -------------------------
    # Evidence requests linked to the audit
    # -------------------------
    @extend_schema(tags=["Audits"], responses={200: EvidenceRequestDetailSerializer(many=True)})
    @action(detail=True, methods=["get"], url_path="evidence-requests")
    def evidence_requests(self, request, pk=None):
        scope = require_scope(request)
        audit = AuditSelector.get_audit(tenant_id=scope.tenant_id, audit_id=_uuid_or_none(pk, "id"))
        qs = EvidenceSelector.list_requests(tenant_id=scope.tenant_id, audit_id=audit.id)
        return Response(EvidenceRequestDetailSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Audits"], request=EvidenceRequestCreateSerializer, responses={201: EvidenceRequestSerializer})
    @evidence_requests.mapping.post
    def create_evidence_request(self, request, pk=None):
        scope = require_scope(request)
        ser = EvidenceRequestCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        data = dict(ser.validated_data)
        data["audit_id"] = _uuid_or_none(pk, "id")
        evidence_request = EvidenceService.create_request(
            tenant_id=scope.tenant_id,
            actor_user_id=request.user.id,
            **data,
        )
        return Response(EvidenceRequestSerializer(evidence_request).data, status=status.HTTP_201_CREATED)


class AuditTemplateViewSet(viewsets.GenericViewSet):
    permission_classes = [AuditTemplatePermission]

    serializer_class = AuditTemplateSerializer
    queryset = AuditTemplate.objects.none()

    @extend_schema(tags=["Audit templates"], responses={200: AuditTemplateSerializer(many=True)})
    def list(self, request):
        scope = require_scope(request)
        return paginate(request, AuditTemplateSelector.list_templates(tenant_id=scope.tenant_id), AuditTemplateSerializer)

    @extend_schema(tags=["Audit templates"], request=AuditTemplateCreateSerializer, responses={201: AuditTemplateDetailSerializer})
    def create(self, request):
        scope = require_scope(request)
        ser = AuditTemplateCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        template = AuditTemplateService.create_template(
            tenant_id=scope.tenant_id,
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(AuditTemplateDetailSerializer(template).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Audit templates"], responses={200: AuditTemplateDetailSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        template = AuditTemplateSelector.get_template(tenant_id=scope.tenant_id, template_id=_uuid_or_none(pk, "id"))
        return Response(AuditTemplateDetailSerializer(template).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Audit templates"],
        request=AuditTemplateIndicatorCreateSerializer,
        responses={201: AuditTemplateIndicatorSerializer},
    )
    @action(detail=True, methods=["post"], url_path="indicators")
    def indicators(self, request, pk=None):
        scope = require_scope(request)
        ser = AuditTemplateIndicatorCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        indicator = AuditTemplateService.add_indicator(
            tenant_id=scope.tenant_id,
            template_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(AuditTemplateIndicatorSerializer(indicator).data, status=status.HTTP_201_CREATED)


class AuditOutcomeViewSet(viewsets.GenericViewSet):
    """
    Indicator responses across all of the company's audits
    (outcome register), filterable by rating and audit.
    """
    permission_classes = [AuditOutcomePermission]

    serializer_class = AuditOutcomeSerializer
    queryset = AuditIndicatorResponse.objects.none()

    @extend_schema(
        tags=["Audits"],
        responses={200: AuditOutcomeSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="rating", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                             enum=IndicatorRating.values),
            OpenApiParameter(name="audit", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = AuditSelector.list_outcomes(
            tenant_id=scope.tenant_id,
            rating=request.query_params.get("rating") or None,
            audit_id=_uuid_or_none(request.query_params.get("audit"), "audit"),
        )
        return paginate(request, qs, AuditOutcomeSerializer)
