# ndis_core/iam/api/me.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ndis_core.iam.api.schema_serializers import MeResponseSerializer
from ndis_core.iam.scope import assert_user_membership, resolve_scope_from_headers
from ndis_core.iam.services.membership import get_company_role, list_user_companies


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: MeResponseSerializer}, tags=["IAM"])
    def get(self, request):
        """
        Returns user info + company memberships.
        The scope header is OPTIONAL here; if provided it must be valid and the
        user must be a member (400/403 otherwise).
        """
        scope = resolve_scope_from_headers(request)
        active_role = None
        if scope is not None:
            assert_user_membership(request.user, scope)
            active_role = get_company_role(user=request.user, tenant_id=scope.tenant_id)

        return Response(
            {
                "user": {
                    "id": request.user.id,
                    "username": getattr(request.user, "username", None),
                    "email": getattr(request.user, "email", None),
                    "is_superuser": bool(getattr(request.user, "is_superuser", False)),
                },
                "memberships": list_user_companies(request.user.id),
                "active_tenant_id": str(scope.tenant_id) if scope else None,
                "active_role": active_role,
            },
            status=status.HTTP_200_OK,
        )
