import json

import pytest
from django.contrib.auth.models import User
from django.test import RequestFactory
from rest_framework.test import APIClient

from ndis_core.common.api.exceptions import ConflictError, api_exception_handler
from ndis_core.common.middleware import TenantScopeMiddleware
from ndis_core.conftest import client_for, make_member
from ndis_core.iam.models import CompanyRole


@pytest.mark.django_db
def test_middleware_missing_scope_returns_error_envelope():
    rf = RequestFactory()
    req = rf.get("/api/v1/audits/")
    req.user = User.objects.create_user(username="u1", password="pass123")

    mw = TenantScopeMiddleware(get_response=lambda r: None)
    resp = mw.process_request(req)

    assert resp is not None
    assert resp.status_code == 400

    body = json.loads(resp.content.decode("utf-8"))
    assert body["error"]["code"] == "validation_error"
    assert "Missing scope header" in body["error"]["message"]
    assert body["error"]["request_id"]


def test_service_error_details_pass_through_untouched():
    resp = api_exception_handler(ConflictError("Run exists.", details={"existing_run_id": "abc", "n": 2}), {})
    assert resp.status_code == 409
    assert resp.data["error"]["code"] == "conflict"
    assert resp.data["error"]["message"] == "Run exists."
    assert resp.data["error"]["details"] == {"existing_run_id": "abc", "n": 2}


@pytest.mark.django_db
def test_field_errors_become_details(api_client, scope):
    res = api_client.post("/api/v1/audits/", {"title": "No type"}, format="json", **scope)
    assert res.status_code == 400
    error = res.data["error"]
    assert error["code"] == "validation_error"
    assert error["message"] == "Request failed."
    assert "audit_type" in error["details"]


@pytest.mark.django_db
def test_unauthenticated_and_forbidden_codes(company, scope):
    res = APIClient().get("/api/v1/audits/", **scope)
    assert res.status_code in (401, 403)
    assert res.data["error"]["code"] in ("not_authenticated", "permission_denied")

    staff = make_member(company, "staff-only", CompanyRole.STAFF_READ_ONLY)
    res = client_for(staff).get("/api/v1/changelog/", **scope)
    assert res.status_code == 403
    assert res.data["error"]["code"] == "permission_denied"
