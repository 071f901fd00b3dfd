# ndis_core/catalogue/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from ndis_core.catalogue.api.serializers import (
    AuditDomainSerializer,
    SelectedLineItemSerializer,
    ServiceSelectionsUpdateSerializer,
)
from ndis_core.catalogue.models import AuditDomain, SupportLineItem
from ndis_core.catalogue.selectors import audit_domains_qs, audit_options, selected_line_item_ids
from ndis_core.catalogue.services import CatalogueService
from ndis_core.common.permissions import CataloguePermission
from ndis_core.common.scope import require_scope


class CatalogueViewSet(viewsets.ViewSet):
    """
    Support catalogue as seen by the company:
    - options: service contexts + line items grouped by category
    - service-selections: GET / PUT (full replace, CompanyAdmin)
    """
    permission_classes = [CataloguePermission]

    @extend_schema(tags=["Catalogue"], responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=["get"], url_path="options")
    def catalogue_options(self, request):
        scope = require_scope(request)
        return Response(audit_options(tenant_id=scope.tenant_id), status=status.HTTP_200_OK)

    @extend_schema(tags=["Catalogue"], responses={200: SelectedLineItemSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="service-selections")
    def service_selections(self, request):
        scope = require_scope(request)
        ids = selected_line_item_ids(tenant_id=scope.tenant_id)
        qs = SupportLineItem.objects.filter(id__in=ids).select_related("category").order_by("category__sort_order", "sort_order")
        return Response(SelectedLineItemSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Catalogue"],
        request=ServiceSelectionsUpdateSerializer,
        responses={200: SelectedLineItemSerializer(many=True)},
    )
    @service_selections.mapping.put
    def replace_service_selections(self, request):
        scope = require_scope(request)

        ser = ServiceSelectionsUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        ids = CatalogueService.set_service_selections(
            tenant_id=scope.tenant_id,
            line_item_ids=ser.validated_data["line_item_ids"],
            actor_user_id=request.user.id,
        )
        qs = SupportLineItem.objects.filter(id__in=ids).select_related("category").order_by("category__sort_order", "sort_order")
        return Response(SelectedLineItemSerializer(qs, many=True).data, status=status.HTTP_200_OK)


class AuditDomainViewSet(viewsets.GenericViewSet):
    """
    The company's audit domains (defaults provisioned on first read).
    """
    permission_classes = [CataloguePermission]

    serializer_class = AuditDomainSerializer
    queryset = AuditDomain.objects.none()

    @extend_schema(tags=["Catalogue"], responses={200: AuditDomainSerializer(many=True)})
    def list(self, request):
        scope = require_scope(request)
        CatalogueService.ensure_default_domains(tenant_id=scope.tenant_id)
        return Response(
            AuditDomainSerializer(audit_domains_qs(tenant_id=scope.tenant_id), many=True).data,
            status=status.HTTP_200_OK,
        )
