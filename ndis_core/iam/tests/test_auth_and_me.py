# ndis_core/iam/tests/test_auth_and_me.py
import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from ndis_core.conftest import client_for
from ndis_core.iam.models import CompanyMembership

pytestmark = pytest.mark.django_db


def test_me_requires_auth():
    """
    A fresh APIClient: the api_client fixture is already authenticated.
    """
    res = APIClient().get("/api/v1/me/")
    assert res.status_code in (401, 403)


def test_login_sets_cookies(user, settings):
    user.set_password("Pass@12345")
    user.save(update_fields=["password"])

    res = APIClient().post("/api/v1/auth/login/", {"username": user.username, "password": "Pass@12345"}, format="json")
    assert res.status_code == 200

    assert settings.SIMPLE_JWT["AUTH_COOKIE"] in res.cookies
    assert settings.SIMPLE_JWT["AUTH_COOKIE_REFRESH"] in res.cookies


def test_login_with_bad_password_fails(user):
    res = APIClient().post("/api/v1/auth/login/", {"username": user.username, "password": "nope"}, format="json")
    assert res.status_code == 401
    assert "error" in res.data


def test_cookie_refresh_and_logout(user, settings):
    user.set_password("Pass@12345")
    user.save(update_fields=["password"])

    client = APIClient()
    client.post("/api/v1/auth/login/", {"username": user.username, "password": "Pass@12345"}, format="json")

    res = client.post("/api/v1/auth/refresh/")
    assert res.status_code == 200
    assert settings.SIMPLE_JWT["AUTH_COOKIE"] in res.cookies

    res = client.get("/api/v1/me/")
    assert res.status_code == 200

    res = client.post("/api/v1/auth/logout/")
    assert res.status_code == 200
    assert res.cookies[settings.SIMPLE_JWT["AUTH_COOKIE"]].value == ""


def test_me_returns_memberships(api_client, user, company, scope):
    res = api_client.get("/api/v1/me/")
    assert res.status_code == 200

    body = res.json()
    assert body["user"]["id"] == user.id
    assert body["memberships"] == [
        {
            "tenant_id": str(company.id),
            "company_code": company.code,
            "company_name": company.name,
            "role": "CompanyAdmin",
        }
    ]
    assert body["active_role"] is None

    res = api_client.get("/api/v1/me/", **scope)
    assert res.json()["active_tenant_id"] == str(company.id)
    assert res.json()["active_role"] == "CompanyAdmin"


def test_scope_header_blocks_non_member(user, other_company):
    """
    A real JWT so CookieOrHeaderJWTAuthentication runs and enforces scope
    (force_authenticate bypasses authentication classes).
    """
    CompanyMembership.objects.filter(user=user, company=other_company).delete()

    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {RefreshToken.for_user(user).access_token}")

    res = client.get("/api/v1/me/", HTTP_X_TENANT_ID=str(other_company.id))
    assert res.status_code == 403


def test_inactive_membership_has_no_access(company, auditor, scope):
    CompanyMembership.objects.filter(user=auditor, company=company).update(is_active=False)
    res = client_for(auditor).get("/api/v1/audits/", **scope)
    assert res.status_code == 403
