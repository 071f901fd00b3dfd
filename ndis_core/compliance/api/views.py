# ndis_core/compliance/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response

from ndis_core.common.api.pagination import paginate
from ndis_core.common.permissions import (
    ComplianceActionPermission,
    ComplianceRunPermission,
    ComplianceTemplatePermission,
    request_role,
)
from ndis_core.common.scope import require_scope
from ndis_core.compliance.api.serializers import (
    ComplianceActionCloseSerializer,
    ComplianceActionSerializer,
    ComplianceActionUpdateSerializer,
    ComplianceRespondSerializer,
    ComplianceResponseSerializer,
    ComplianceRollupQuerySerializer,
    ComplianceRollupSerializer,
    ComplianceRunCreateSerializer,
    ComplianceRunDetailSerializer,
    ComplianceRunSerializer,
    ComplianceSubmitResultSerializer,
    ComplianceTemplateCreateSerializer,
    ComplianceTemplateDetailSerializer,
    ComplianceTemplateItemInputSerializer,
    ComplianceTemplateItemSerializer,
    ComplianceTemplateSerializer,
    ComplianceTemplateUpdateSerializer,
)
from ndis_core.compliance.models import ComplianceAction, ComplianceRun, ComplianceTemplate, ComplianceTemplateItem
from ndis_core.compliance.selectors import (
    ComplianceActionSelector,
    ComplianceRunSelector,
    ComplianceTemplateSelector,
    compliance_rollup,
)
from ndis_core.compliance.services import ComplianceActionService, ComplianceRunService, ComplianceTemplateService


def _uuid_or_none(value: str | None, field_name: str) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise DRFValidationError({field_name: "Invalid UUID"})


def _query_param(name: str, type_=OpenApiTypes.STR) -> OpenApiParameter:
    return OpenApiParameter(name=name, type=type_, location=OpenApiParameter.QUERY, required=False)


class ComplianceTemplateViewSet(viewsets.GenericViewSet):
    permission_classes = [ComplianceTemplatePermission]

    serializer_class = ComplianceTemplateSerializer
    queryset = ComplianceTemplate.objects.none()

    @extend_schema(
        tags=["Compliance"],
        responses={200: ComplianceTemplateSerializer(many=True)},
        parameters=[
            _query_param("scope_type"),
            _query_param("frequency"),
            _query_param("is_active", OpenApiTypes.BOOL),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = ComplianceTemplateSelector.list_templates(tenant_id=scope.tenant_id, params=request.query_params)
        return paginate(request, qs, ComplianceTemplateSerializer)

    @extend_schema(tags=["Compliance"], request=ComplianceTemplateCreateSerializer, responses={201: ComplianceTemplateSerializer})
    def create(self, request):
        scope = require_scope(request)
        ser = ComplianceTemplateCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        template = ComplianceTemplateService.create_template(
            tenant_id=scope.tenant_id,
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(ComplianceTemplateSerializer(template).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Compliance"], responses={200: ComplianceTemplateDetailSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        template = ComplianceTemplateSelector.get_template(tenant_id=scope.tenant_id, template_id=_uuid_or_none(pk, "id"))
        template.item_count = template.items.count()
        return Response(ComplianceTemplateDetailSerializer(template).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Compliance"], request=ComplianceTemplateUpdateSerializer, responses={200: ComplianceTemplateSerializer})
    def partial_update(self, request, pk=None):
        scope = require_scope(request)
        ser = ComplianceTemplateUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        template = ComplianceTemplateService.update_template(
            tenant_id=scope.tenant_id,
            template_id=_uuid_or_none(pk, "id"),
            changes=dict(ser.validated_data),
            actor_user_id=request.user.id,
        )
        return Response(ComplianceTemplateSerializer(template).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Compliance"], responses={200: ComplianceTemplateSerializer})
    def destroy(self, request, pk=None):
        """Deactivates; runs keep pointing at the template."""
        scope = require_scope(request)
        template = ComplianceTemplateService.deactivate_template(
            tenant_id=scope.tenant_id,
            template_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
        )
        return Response(ComplianceTemplateSerializer(template).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Compliance"], responses={200: ComplianceTemplateItemSerializer(many=True)})
    @action(detail=True, methods=["get"], url_path="items")
    def items(self, request, pk=None):
        scope = require_scope(request)
        template = ComplianceTemplateSelector.get_template(tenant_id=scope.tenant_id, template_id=_uuid_or_none(pk, "id"))
        items = ComplianceTemplateSelector.list_items(template=template)
        return Response(ComplianceTemplateItemSerializer(items, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Compliance"],
        request=ComplianceTemplateItemInputSerializer,
        responses={201: ComplianceTemplateItemSerializer},
    )
    @items.mapping.post
    def add_item(self, request, pk=None):
        scope = require_scope(request)
        ser = ComplianceTemplateItemInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        item = ComplianceTemplateService.add_item(
            tenant_id=scope.tenant_id,
            template_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(ComplianceTemplateItemSerializer(item).data, status=status.HTTP_201_CREATED)


class ComplianceTemplateItemViewSet(viewsets.GenericViewSet):
    permission_classes = [ComplianceTemplatePermission]

    serializer_class = ComplianceTemplateItemSerializer
    queryset = ComplianceTemplateItem.objects.none()

    @extend_schema(
        tags=["Compliance"],
        request=ComplianceTemplateItemInputSerializer,
        responses={200: ComplianceTemplateItemSerializer},
    )
    def partial_update(self, request, pk=None):
        scope = require_scope(request)
        ser = ComplianceTemplateItemInputSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        item = ComplianceTemplateService.update_item(
            tenant_id=scope.tenant_id,
            item_id=_uuid_or_none(pk, "id"),
            changes=dict(ser.validated_data),
            actor_user_id=request.user.id,
        )
        return Response(ComplianceTemplateItemSerializer(item).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Compliance"], responses={204: None})
    def destroy(self, request, pk=None):
        scope = require_scope(request)
        ComplianceTemplateService.delete_item(
            tenant_id=scope.tenant_id,
            item_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class ComplianceRunViewSet(viewsets.GenericViewSet):
    """
    Checklist runs: create (OPEN) -> respond -> submit (SUBMITTED, actions raised).
    """
    permission_classes = [ComplianceRunPermission]

    serializer_class = ComplianceRunSerializer
    queryset = ComplianceRun.objects.none()

    @extend_schema(
        tags=["Compliance"],
        responses={200: ComplianceRunSerializer(many=True)},
        parameters=[
            _query_param("site", OpenApiTypes.UUID),
            _query_param("participant", OpenApiTypes.UUID),
            _query_param("template", OpenApiTypes.UUID),
            _query_param("status"),
            _query_param("frequency"),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = ComplianceRunSelector.list_runs(tenant_id=scope.tenant_id, params=request.query_params)
        return paginate(request, qs, ComplianceRunSerializer)

    @extend_schema(tags=["Compliance"], request=ComplianceRunCreateSerializer, responses={201: ComplianceRunSerializer})
    def create(self, request):
        scope = require_scope(request)
        ser = ComplianceRunCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        run = ComplianceRunService.create_run(
            tenant_id=scope.tenant_id,
            template_id=data["template_id"],
            site_id=data.get("site_id"),
            participant_id=data.get("participant_id"),
            day=data.get("date"),
            period_start=data.get("period_start"),
            period_end=data.get("period_end"),
            actor_user_id=request.user.id,
            actor_role=request_role(request),
        )
        return Response(ComplianceRunSerializer(run).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Compliance"], responses={200: ComplianceRunDetailSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        detail = ComplianceRunSelector.detail(tenant_id=scope.tenant_id, run_id=_uuid_or_none(pk, "id"))
        return Response(ComplianceRunDetailSerializer(detail).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Compliance"], request=ComplianceRespondSerializer, responses={200: ComplianceResponseSerializer})
    @action(detail=True, methods=["post"], url_path="respond")
    def respond(self, request, pk=None):
        scope = require_scope(request)
        ser = ComplianceRespondSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        response = ComplianceRunService.respond(
            tenant_id=scope.tenant_id,
            run_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
            **ser.validated_data,
        )
        return Response(ComplianceResponseSerializer(response).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Compliance"], request=None, responses={200: ComplianceSubmitResultSerializer})
    @action(detail=True, methods=["post"], url_path="submit")
    def submit(self, request, pk=None):
        scope = require_scope(request)
        result = ComplianceRunService.submit(
            tenant_id=scope.tenant_id,
            run_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
        )
        return Response(ComplianceSubmitResultSerializer(result).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Compliance"],
        responses={200: ComplianceRollupSerializer},
        parameters=[
            _query_param("frequency"),
            _query_param("site", OpenApiTypes.UUID),
            _query_param("participant", OpenApiTypes.UUID),
            _query_param("period_start", OpenApiTypes.DATE),
            _query_param("period_end", OpenApiTypes.DATE),
        ],
    )
    def rollup(self, request):
        scope = require_scope(request)
        ser = ComplianceRollupQuerySerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        q = ser.validated_data

        data = compliance_rollup(
            tenant_id=scope.tenant_id,
            frequency=q.get("frequency"),
            site_id=q.get("site"),
            participant_id=q.get("participant"),
            period_start=q.get("period_start"),
            period_end=q.get("period_end"),
        )
        return Response(ComplianceRollupSerializer(data).data, status=status.HTTP_200_OK)


class ComplianceActionViewSet(viewsets.GenericViewSet):
    permission_classes = [ComplianceActionPermission]

    serializer_class = ComplianceActionSerializer
    queryset = ComplianceAction.objects.none()

    @extend_schema(
        tags=["Compliance"],
        responses={200: ComplianceActionSerializer(many=True)},
        parameters=[
            _query_param("site", OpenApiTypes.UUID),
            _query_param("participant", OpenApiTypes.UUID),
            _query_param("run", OpenApiTypes.UUID),
            _query_param("status"),
            _query_param("severity"),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        qs = ComplianceActionSelector.list_actions(tenant_id=scope.tenant_id, params=request.query_params)
        return paginate(request, qs, ComplianceActionSerializer)

    @extend_schema(tags=["Compliance"], responses={200: ComplianceActionSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        item = ComplianceActionSelector.get_action(tenant_id=scope.tenant_id, action_id=_uuid_or_none(pk, "id"))
        return Response(ComplianceActionSerializer(item).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Compliance"], request=ComplianceActionUpdateSerializer, responses={200: ComplianceActionSerializer})
    def partial_update(self, request, pk=None):
        scope = require_scope(request)
        ser = ComplianceActionUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        item = ComplianceActionService.update_action(
            tenant_id=scope.tenant_id,
            action_id=_uuid_or_none(pk, "id"),
            changes=dict(ser.validated_data),
            actor_user_id=request.user.id,
            actor_role=request_role(request),
        )
        return Response(ComplianceActionSerializer(item).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Compliance"], request=ComplianceActionCloseSerializer, responses={200: ComplianceActionSerializer})
    @action(detail=True, methods=["post"], url_path="close")
    def close(self, request, pk=None):
        scope = require_scope(request)
        ser = ComplianceActionCloseSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        item = ComplianceActionService.close_action(
            tenant_id=scope.tenant_id,
            action_id=_uuid_or_none(pk, "id"),
            actor_user_id=request.user.id,
            actor_role=request_role(request),
            **ser.validated_data,
        )
        return Response(ComplianceActionSerializer(item).data, status=status.HTTP_200_OK)
