# ndis_core/audits/tests/test_indicator_responses_api.py
import pytest

from ndis_core.audits.models import AuditIndicatorResponse, AuditTemplate, AuditTemplateIndicator
from ndis_core.audits.services import AuditService
from ndis_core.conftest import client_for, make_member, scope_headers
from ndis_core.iam.models import CompanyRole
from ndis_core.findings.models import Finding, FindingStatus

pytestmark = pytest.mark.django_db

AUDITS = "/api/v1/audits/"


def _indicators(template):
    return list(template.indicators.order_by("sort_order"))


def _put(client, scope, audit, indicator, rating, comment=""):
    return client.put(
        f"{AUDITS}{audit.id}/responses/{indicator.id}/",
        {"rating": rating, "comment": comment},
        format="json",
        **scope,
    )


def test_non_conformance_needs_comment(api_client, scope, started_audit, audit_template):
    first = _indicators(audit_template)[0]
    res = _put(api_client, scope, started_audit, first, "MINOR_NC", "   ")
    assert res.status_code == 400
    assert "comment" in res.data["error"]["details"]
    assert not AuditIndicatorResponse.objects.filter(audit=started_audit).exists()


def test_score_points_follow_rating(api_client, scope, started_audit, audit_template):
    first = _indicators(audit_template)[0]
    res = _put(api_client, scope, started_audit, first, "MAJOR_NC", "Missing")
    assert res.data["score_points"] == -2
    assert res.data["score_version"] == "v1"

    res = _put(api_client, scope, started_audit, first, "CONFORMANCE")
    assert res.data["score_points"] == 2
    assert AuditIndicatorResponse.objects.filter(audit=started_audit, indicator=first).count() == 1


def test_finding_created_once_per_indicator(api_client, scope, started_audit, audit_template):
    critical = _indicators(audit_template)[1]

    _put(api_client, scope, started_audit, critical, "MINOR_NC", "Register incomplete")
    _put(api_client, scope, started_audit, critical, "MAJOR_NC", "Register not kept at all")

    findings = Finding.objects.filter(audit=started_audit, indicator=critical)
    assert findings.count() == 1
    finding = findings.get()
    assert finding.severity == "MINOR_NC"
    assert finding.status == FindingStatus.OPEN
    assert finding.finding_text == (
        "Indicator: Incident register maintained. Auditor comment: Register incomplete."
    )


def test_conformance_and_observation_raise_no_finding(api_client, scope, started_audit, audit_template):
    first, _, third = _indicators(audit_template)
    _put(api_client, scope, started_audit, first, "CONFORMANCE")
    _put(api_client, scope, started_audit, third, "OBSERVATION", "Minor gap")
    assert not Finding.objects.filter(audit=started_audit).exists()


def test_indicator_from_another_template_is_not_found(api_client, scope, started_audit, company):
    other = AuditTemplate.objects.create(tenant_id=company.id, name="Other", version="1")
    foreign = AuditTemplateIndicator.objects.create(tenant_id=company.id, template=other, indicator_text="Elsewhere")

    res = _put(api_client, scope, started_audit, foreign, "CONFORMANCE")
    assert res.status_code == 404


def test_responses_frozen_outside_in_progress(api_client, scope, started_audit, audit_template, company, user):
    for indicator in _indicators(audit_template):
        _put(api_client, scope, started_audit, indicator, "CONFORMANCE")
    AuditService.submit_for_review(tenant_id=company.id, audit_id=started_audit.id, actor_user_id=user.id)

    res = _put(api_client, scope, started_audit, _indicators(audit_template)[0], "OBSERVATION", "late")
    assert res.status_code == 409
    assert res.data["error"]["code"] == "precondition_failed"


def test_reviewer_adds_missing_indicator_in_review(
    api_client, scope, started_audit, audit_template, company, user, reviewer
):
    for indicator in _indicators(audit_template):
        _put(api_client, scope, started_audit, indicator, "CONFORMANCE")
    AuditService.submit_for_review(tenant_id=company.id, audit_id=started_audit.id, actor_user_id=user.id)

    late = AuditTemplateIndicator.objects.create(
        tenant_id=company.id, template=audit_template, indicator_text="Complaints register reviewed", sort_order=4
    )
    client = client_for(reviewer)
    url = f"{AUDITS}{started_audit.id}/in-review-responses/"

    res = client.post(url, {"indicator_id": str(late.id), "rating": "MAJOR_NC", "comment": "Not reviewed"}, format="json", **scope)
    assert res.status_code == 201, res.data
    assert res.data["added_in_review"] is True
    assert Finding.objects.filter(audit=started_audit, indicator=late, severity="MAJOR_NC").exists()

    res = client.post(url, {"indicator_id": str(late.id), "rating": "CONFORMANCE"}, format="json", **scope)
    assert res.status_code == 409


def test_in_review_response_requires_review_status(scope, started_audit, audit_template, reviewer):
    first = _indicators(audit_template)[0]
    res = client_for(reviewer).post(
        f"{AUDITS}{started_audit.id}/in-review-responses/",
        {"indicator_id": str(first.id), "rating": "CONFORMANCE"},
        format="json",
        **scope,
    )
    assert res.status_code == 409


OUTCOMES = "/api/v1/audit-outcomes/"


def test_outcomes_filter_by_rating_and_audit(api_client, scope, started_audit, audit_template, staff_user):
    first, critical, third = _indicators(audit_template)
    _put(api_client, scope, started_audit, first, "CONFORMANCE")
    _put(api_client, scope, started_audit, critical, "MAJOR_NC", "No register")
    _put(api_client, scope, started_audit, third, "OBSERVATION", "Renewals due")

    res = api_client.get(f"{OUTCOMES}?rating=MAJOR_NC", **scope)
    assert res.status_code == 200
    assert res.data["count"] == 1
    row = res.data["results"][0]
    assert row["indicator_id"] == str(critical.id)
    assert row["indicator_text"] == "Incident register maintained"
    assert row["audit_id"] == str(started_audit.id)
    assert row["audit_title"] == "Quarterly internal audit"
    assert row["audit_status"] == "IN_PROGRESS"

    res = client_for(staff_user).get(f"{OUTCOMES}?audit={started_audit.id}", **scope)
    assert res.status_code == 200
    assert res.data["count"] == 3


def test_outcomes_reject_unknown_audit_and_rating(api_client, scope, started_audit, other_company):
    outsider = make_member(other_company, "outsider", CompanyRole.COMPANY_ADMIN)
    res = client_for(outsider).get(f"{OUTCOMES}?audit={started_audit.id}", **scope_headers(other_company))
    assert res.status_code == 404

    res = api_client.get(f"{OUTCOMES}?rating=GREAT", **scope)
    assert res.status_code == 400
