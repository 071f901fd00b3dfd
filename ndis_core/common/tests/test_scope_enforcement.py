import json

import pytest
from django.contrib.auth.models import User
from django.test import RequestFactory

from ndis_core.common.middleware import TenantScopeMiddleware
from ndis_core.conftest import client_for, make_member, scope_headers
from ndis_core.iam.models import CompanyRole


@pytest.mark.django_db
def test_middleware_invalid_scope_returns_error_envelope():
    rf = RequestFactory()
    req = rf.get("/api/v1/audits/", **{"HTTP_X_TENANT_ID": "not-a-uuid"})
    req.user = User.objects.create_user(username="u2", password="pass123")

    mw = TenantScopeMiddleware(get_response=lambda r: None)
    resp = mw.process_request(req)

    assert resp is not None
    assert resp.status_code == 400

    body = json.loads(resp.content.decode("utf-8"))
    assert body["error"]["code"] == "validation_error"
    assert "Invalid scope header" in body["error"]["message"]


@pytest.mark.django_db
def test_middleware_non_member_returns_403_envelope(monkeypatch):
    monkeypatch.setattr(
        "ndis_core.iam.services.membership.is_user_member_of_company",
        lambda **kwargs: False,
        raising=True,
    )

    rf = RequestFactory()
    req = rf.get("/api/v1/audits/", **{"HTTP_X_TENANT_ID": "11111111-1111-1111-1111-111111111111"})
    req.user = User.objects.create_user(username="u3", password="pass123")

    mw = TenantScopeMiddleware(get_response=lambda r: None)
    resp = mw.process_request(req)

    assert resp is not None
    assert resp.status_code == 403

    body = json.loads(resp.content.decode("utf-8"))
    assert body["error"]["code"] == "permission_denied"
    assert "do not have access" in body["error"]["message"].lower()


@pytest.mark.django_db
def test_middleware_attaches_scope_for_members(company):
    rf = RequestFactory()
    req = rf.get("/api/v1/audits/", **scope_headers(company))
    req.user = make_member(company, "member", CompanyRole.AUDITOR)

    mw = TenantScopeMiddleware(get_response=lambda r: None)
    assert mw.process_request(req) is None
    assert req.tenant_id == company.id
    assert req.scope.tenant_id == company.id


@pytest.mark.django_db
def test_docs_and_auth_paths_skip_scope():
    rf = RequestFactory()
    mw = TenantScopeMiddleware(get_response=lambda r: None)
    user = User.objects.create_user(username="u4", password="pass123")

    for path in ("/api/docs/", "/api/v1/auth/login/", "/api/v1/me/"):
        req = rf.get(path)
        req.user = user
        assert mw.process_request(req) is None


@pytest.mark.django_db
def test_legacy_company_header_is_accepted(company, auditor):
    res = client_for(auditor).get("/api/v1/audits/", HTTP_X_COMPANY_ID=str(company.id))
    assert res.status_code == 200


@pytest.mark.django_db
def test_rows_of_other_companies_are_invisible(company, other_company, user, site_daily_template):
    outsider = make_member(other_company, "outsider", CompanyRole.COMPANY_ADMIN)
    res = client_for(outsider).get("/api/v1/compliance/templates/", **scope_headers(other_company))
    assert res.status_code == 200
    assert res.data["count"] == 0

    res = client_for(outsider).get("/api/v1/compliance/templates/", **scope_headers(company))
    assert res.status_code == 403
