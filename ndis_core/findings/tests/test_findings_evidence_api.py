# ndis_core/findings/tests/test_findings_evidence_api.py
import pytest

from ndis_core.audits.responses import IndicatorResponseService
from ndis_core.conftest import client_for, make_member
from ndis_core.findings.models import EvidenceItem, EvidenceStatus, Finding, FindingStatus
from ndis_core.iam.models import CompanyRole

pytestmark = pytest.mark.django_db

FINDINGS = "/api/v1/findings/"
REQUESTS = "/api/v1/evidence/requests/"


@pytest.fixture
def major_finding(company, user, started_audit, audit_template):
    critical = audit_template.indicators.get(is_critical_control=True)
    IndicatorResponseService.save_response(
        tenant_id=company.id,
        audit_id=started_audit.id,
        indicator_id=critical.id,
        rating="MAJOR_NC",
        comment="No register",
        actor_user_id=user.id,
    )
    return Finding.objects.get(audit=started_audit, indicator=critical)


def _request(client, scope, finding, **extra):
    payload = {"evidence_type": "INCIDENT_REPORT", "request_note": "Upload the current incident register", **extra}
    return client.post(f"{FINDINGS}{finding.id}/request-evidence/", payload, format="json", **scope)


def _submit_link(client, scope, request_id):
    return client.post(
        f"{REQUESTS}{request_id}/submit/",
        {"storage_kind": "LINK", "file_name": "register.xlsx", "external_url": "https://files.example/register.xlsx"},
        format="json",
        **scope,
    )


def test_list_filters(api_client, scope, major_finding, started_audit):
    res = api_client.get(f"{FINDINGS}?severity=MAJOR_NC&status=OPEN&audit={started_audit.id}", **scope)
    assert res.status_code == 200
    assert [f["id"] for f in res.data["results"]] == [str(major_finding.id)]
    assert res.data["results"][0]["indicator_text"] == "Incident register maintained"

    res = api_client.get(f"{FINDINGS}?severity=MINOR_NC", **scope)
    assert res.data["count"] == 0


def test_accepting_evidence_closes_the_finding(api_client, scope, major_finding, user):
    res = _request(api_client, scope, major_finding, due_date="2026-11-30")
    assert res.status_code == 201, res.data
    request_id = res.data["id"]
    assert res.data["status"] == EvidenceStatus.REQUESTED
    assert res.data["finding_id"] == str(major_finding.id)
    assert res.data["audit_id"] == str(major_finding.audit_id)

    res = _submit_link(api_client, scope, request_id)
    assert res.status_code == 201, res.data

    res = api_client.post(f"{REQUESTS}{request_id}/start-review/", **scope)
    assert res.data["status"] == EvidenceStatus.UNDER_REVIEW

    res = api_client.post(f"{REQUESTS}{request_id}/review/", {"decision": "ACCEPTED"}, format="json", **scope)
    assert res.status_code == 200, res.data
    assert res.data["status"] == EvidenceStatus.ACCEPTED

    major_finding.refresh_from_db()
    assert major_finding.status == FindingStatus.CLOSED
    assert major_finding.closure_note == "Evidence accepted"
    assert major_finding.closed_by_id == user.id


def test_rejected_evidence_can_be_resubmitted(api_client, scope, major_finding):
    request_id = _request(api_client, scope, major_finding).data["id"]
    _submit_link(api_client, scope, request_id)

    res = api_client.post(
        f"{REQUESTS}{request_id}/review/", {"decision": "REJECTED", "review_note": "Wrong file"}, format="json", **scope
    )
    assert res.data["status"] == EvidenceStatus.REJECTED

    res = _submit_link(api_client, scope, request_id)
    assert res.status_code == 201

    res = api_client.get(f"{REQUESTS}{request_id}/", **scope)
    assert res.data["status"] == EvidenceStatus.SUBMITTED
    assert len(res.data["items"]) == 2

    major_finding.refresh_from_db()
    assert major_finding.status == FindingStatus.OPEN


def test_one_active_request_per_finding(api_client, scope, major_finding):
    first = _request(api_client, scope, major_finding)
    res = _request(api_client, scope, major_finding)
    assert res.status_code == 409
    assert res.data["error"]["code"] == "conflict"
    assert res.data["error"]["details"] == {"existing_request_id": first.data["id"]}


def test_submit_validation(api_client, scope, major_finding):
    request_id = _request(api_client, scope, major_finding).data["id"]

    res = api_client.post(
        f"{REQUESTS}{request_id}/submit/", {"storage_kind": "UPLOAD", "file_name": "scan.pdf"}, format="json", **scope
    )
    assert res.status_code == 400

    res = api_client.post(
        f"{REQUESTS}{request_id}/submit/",
        {"storage_kind": "UPLOAD", "file_name": "scan.pdf", "file_path": "evidence/scan.pdf", "mime_type": "application/pdf"},
        format="json",
        **scope,
    )
    assert res.status_code == 201, res.data
    assert EvidenceItem.objects.filter(evidence_request_id=request_id).count() == 1

    assert _submit_link(api_client, scope, request_id).status_code == 409


def test_review_needs_submitted_evidence(api_client, scope, major_finding):
    request_id = _request(api_client, scope, major_finding).data["id"]
    res = api_client.post(f"{REQUESTS}{request_id}/review/", {"decision": "ACCEPTED"}, format="json", **scope)
    assert res.status_code == 409


def test_standalone_and_audit_linked_requests(api_client, scope, started_audit, audit_template, company):
    res = api_client.post(
        REQUESTS, {"evidence_type": "POLICY", "request_note": "Current privacy policy"}, format="json", **scope
    )
    assert res.status_code == 201, res.data
    assert res.data["audit_id"] is None
    assert res.data["finding_id"] is None

    indicator = audit_template.indicators.order_by("sort_order").first()
    res = api_client.post(
        f"/api/v1/audits/{started_audit.id}/evidence-requests/",
        {"evidence_type": "POLICY", "request_note": "Policy index", "template_indicator_id": str(indicator.id)},
        format="json",
        **scope,
    )
    assert res.status_code == 201, res.data
    assert res.data["template_indicator_id"] == str(indicator.id)

    res = api_client.get(f"/api/v1/audits/{started_audit.id}/evidence-requests/", **scope)
    assert len(res.data) == 1

    res = api_client.post(
        REQUESTS,
        {"evidence_type": "POLICY", "request_note": "x", "template_indicator_id": str(indicator.id)},
        format="json",
        **scope,
    )
    assert res.status_code == 400


def test_manual_close_needs_reviewer(scope, major_finding, auditor, reviewer):
    res = client_for(auditor).patch(f"{FINDINGS}{major_finding.id}/", {"status": "CLOSED"}, format="json", **scope)
    assert res.status_code == 403

    res = client_for(auditor).patch(f"{FINDINGS}{major_finding.id}/", {"status": "UNDER_REVIEW"}, format="json", **scope)
    assert res.status_code == 200, res.data
    assert res.data["status"] == FindingStatus.UNDER_REVIEW

    res = client_for(reviewer).patch(f"{FINDINGS}{major_finding.id}/", {"status": "CLOSED"}, format="json", **scope)
    assert res.status_code == 200, res.data
    assert res.data["closed_at"]

    res = client_for(reviewer).patch(f"{FINDINGS}{major_finding.id}/", {"due_date": "2026-12-01"}, format="json", **scope)
    assert res.status_code == 409


def test_owner_must_be_member(api_client, scope, major_finding, other_company, auditor):
    outsider = make_member(other_company, "outsider", CompanyRole.AUDITOR)
    res = api_client.patch(f"{FINDINGS}{major_finding.id}/", {"owner_user_id": outsider.id}, format="json", **scope)
    assert res.status_code == 400

    res = api_client.patch(f"{FINDINGS}{major_finding.id}/", {"owner_user_id": auditor.id}, format="json", **scope)
    assert res.status_code == 200
    assert res.data["owner_user_id"] == auditor.id


def test_staff_can_submit_but_not_request(scope, major_finding, staff_user, api_client):
    staff = client_for(staff_user)
    assert _request(staff, scope, major_finding).status_code == 403

    request_id = _request(api_client, scope, major_finding).data["id"]
    assert _submit_link(staff, scope, request_id).status_code == 201


def test_staff_update_finding_but_cannot_close_it(scope, major_finding, staff_user):
    staff = client_for(staff_user)

    res = staff.patch(f"{FINDINGS}{major_finding.id}/", {"due_date": "2026-12-15"}, format="json", **scope)
    assert res.status_code == 200, res.data
    assert res.data["due_date"] == "2026-12-15"

    res = staff.patch(f"{FINDINGS}{major_finding.id}/", {"status": "CLOSED"}, format="json", **scope)
    assert res.status_code == 403
    major_finding.refresh_from_db()
    assert major_finding.status == FindingStatus.OPEN
