# ndis_core/changelog/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from ndis_core.changelog.api.serializers import ChangeLogEntrySerializer
from ndis_core.changelog.models import ChangeLogEntry
from ndis_core.changelog.selectors import list_change_log
from ndis_core.common.permissions import ChangeLogPermission
from ndis_core.common.scope import require_scope


class ChangeLogViewSet(viewsets.GenericViewSet):
    """
    List change-log entries for the company (CompanyAdmin only).
    """
    permission_classes = [ChangeLogPermission]

    serializer_class = ChangeLogEntrySerializer
    queryset = ChangeLogEntry.objects.none()

    @extend_schema(
        tags=["Change log"],
        responses={200: ChangeLogEntrySerializer(many=True)},
        parameters=[
            OpenApiParameter(name="entity_type", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                             description="Filter by entity type (e.g. audit, finding, compliance_run)."),
            OpenApiParameter(name="entity_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="action", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False,
                             description="Filter by action tag (e.g. AUDIT_CLOSED)."),
            OpenApiParameter(name="actor_user_id", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="limit", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY, required=False,
                             description="Max records to return (default 200, max 500)."),
        ],
    )
    def list(self, request):
        scope = require_scope(request)
        params = request.query_params

        entity_id = None
        if params.get("entity_id"):
            try:
                entity_id = UUID(str(params["entity_id"]))
            except ValueError:
                raise ValidationError({"entity_id": "Invalid UUID"})

        actor_user_id = None
        if params.get("actor_user_id"):
            try:
                actor_user_id = int(params["actor_user_id"])
            except ValueError:
                raise ValidationError({"actor_user_id": "Invalid actor_user_id (int expected)"})

        qs = list_change_log(
            tenant_id=scope.tenant_id,
            entity_type=params.get("entity_type") or None,
            entity_id=entity_id,
            action=params.get("action") or None,
            actor_user_id=actor_user_id,
        )

        # timeline endpoints can get huge
        try:
            limit_n = int(params.get("limit") or 200)
        except ValueError:
            limit_n = 200
        limit_n = max(1, min(limit_n, 500))

        return Response(ChangeLogEntrySerializer(qs[:limit_n], many=True).data, status=status.HTTP_200_OK)
