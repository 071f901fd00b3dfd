# ndis_core/sites/tests/test_sites_and_assignments_api.py
import pytest

from ndis_core.changelog.models import ChangeLogEntry
from ndis_core.conftest import client_for, make_member
from ndis_core.iam.models import CompanyRole
from ndis_core.sites.models import Participant, ParticipantSiteAssignment, RecordStatus, StaffSiteAssignment, WorkSite

pytestmark = pytest.mark.django_db

SITES = "/api/v1/work-sites/"
PARTICIPANTS = "/api/v1/participants/"
SITE_ASSIGNMENTS = "/api/v1/staff-site-assignments/"
PARTICIPANT_ASSIGNMENTS = "/api/v1/staff-participant-assignments/"
PLACEMENTS = "/api/v1/participant-site-assignments/"


def test_auditor_creates_and_updates_a_site(company, auditor, scope):
    client = client_for(auditor)
    res = client.post(SITES, {"name": "  Elm Rd House ", "site_type": "SIL", "state": "VIC"}, format="json", **scope)
    assert res.status_code == 201, res.data
    assert res.data["name"] == "Elm Rd House"
    assert res.data["status"] == RecordStatus.ACTIVE
    site_id = res.data["id"]

    res = client.patch(f"{SITES}{site_id}/", {"postcode": "3000"}, format="json", **scope)
    assert res.status_code == 200
    assert res.data["postcode"] == "3000"

    res = client.patch(f"{SITES}{site_id}/", {"name": ""}, format="json", **scope)
    assert res.status_code == 400

    log = ChangeLogEntry.objects.filter(entity_id=site_id).order_by("occurred_at")
    assert [e.action for e in log] == ["WORK_SITE_CREATED", "WORK_SITE_UPDATED"]
    assert log[1].before_json["postcode"] == ""
    assert log[1].after_json["postcode"] == "3000"


def test_delete_deactivates(api_client, scope, work_site):
    res = api_client.delete(f"{SITES}{work_site.id}/", **scope)
    assert res.status_code == 200
    assert res.data["status"] == RecordStatus.INACTIVE
    assert WorkSite.objects.filter(id=work_site.id).exists()

    res = api_client.get(f"{SITES}?status=ACTIVE", **scope)
    assert res.data["count"] == 0


def test_participant_site_must_belong_to_company(api_client, scope, other_company):
    foreign = WorkSite.objects.create(tenant_id=other_company.id, name="Elsewhere")
    res = api_client.post(
        PARTICIPANTS, {"first_name": "Jo", "last_name": "Bloggs", "primary_site_id": str(foreign.id)}, format="json", **scope
    )
    assert res.status_code == 404


def test_participants_filter_by_site(api_client, scope, participant, work_site, company):
    Participant.objects.create(tenant_id=company.id, first_name="Sam", last_name="Unhoused")

    res = api_client.get(f"{PARTICIPANTS}?site={work_site.id}", **scope)
    assert [p["id"] for p in res.data["results"]] == [str(participant.id)]
    assert res.data["results"][0]["full_name"] == "Alex C"


def test_staff_see_only_assigned_records(api_client, scope, staff_user, work_site, participant, company):
    other_site = WorkSite.objects.create(tenant_id=company.id, name="Other House")
    staff = client_for(staff_user)

    assert staff.get(SITES, **scope).data["count"] == 0
    assert staff.get(f"{SITES}{work_site.id}/", **scope).status_code == 403
    assert staff.get(f"{PARTICIPANTS}{participant.id}/", **scope).status_code == 403

    res = api_client.post(
        SITE_ASSIGNMENTS, {"user_id": staff_user.id, "site_id": str(work_site.id)}, format="json", **scope
    )
    assert res.status_code == 201, res.data
    assignment_id = res.data["id"]

    assert [s["id"] for s in staff.get(SITES, **scope).data["results"]] == [str(work_site.id)]
    assert staff.get(f"{SITES}{other_site.id}/", **scope).status_code == 403
    # lives at the assigned site
    assert staff.get(f"{PARTICIPANTS}{participant.id}/", **scope).status_code == 200
    assert staff.post(SITES, {"name": "Nope"}, format="json", **scope).status_code == 403

    res = api_client.delete(f"{SITE_ASSIGNMENTS}{assignment_id}/", **scope)
    assert res.status_code == 204
    assert staff.get(SITES, **scope).data["count"] == 0


def test_participant_assignment_grants_access(api_client, scope, staff_user, participant):
    res = api_client.post(
        PARTICIPANT_ASSIGNMENTS, {"user_id": staff_user.id, "participant_id": str(participant.id)}, format="json", **scope
    )
    assert res.status_code == 201, res.data
    assert res.data["participant_name"] == "Alex C"

    res = client_for(staff_user).get(PARTICIPANTS, **scope)
    assert [p["id"] for p in res.data["results"]] == [str(participant.id)]

    res = api_client.get(f"{PARTICIPANT_ASSIGNMENTS}?user_id={staff_user.id}", **scope)
    assert res.data["count"] == 1


def test_duplicate_and_non_member_assignments(api_client, scope, staff_user, work_site, other_company):
    payload = {"user_id": staff_user.id, "site_id": str(work_site.id)}
    assert api_client.post(SITE_ASSIGNMENTS, payload, format="json", **scope).status_code == 201

    res = api_client.post(SITE_ASSIGNMENTS, payload, format="json", **scope)
    assert res.status_code == 409
    assert res.data["error"]["code"] == "conflict"

    outsider = make_member(other_company, "outsider", CompanyRole.STAFF_READ_ONLY)
    res = api_client.post(
        SITE_ASSIGNMENTS, {"user_id": outsider.id, "site_id": str(work_site.id)}, format="json", **scope
    )
    assert res.status_code == 404


def test_only_admin_manages_assignments(auditor, scope, staff_user, work_site):
    res = client_for(auditor).post(
        SITE_ASSIGNMENTS, {"user_id": staff_user.id, "site_id": str(work_site.id)}, format="json", **scope
    )
    assert res.status_code == 403


def test_participant_placements_are_time_bounded(api_client, scope, participant, work_site, company):
    respite = WorkSite.objects.create(tenant_id=company.id, name="Respite House")

    res = api_client.post(
        PLACEMENTS,
        {"participant_id": str(participant.id), "site_id": str(work_site.id), "start_date": "2026-01-01", "is_primary": True},
        format="json",
        **scope,
    )
    assert res.status_code == 201, res.data
    assert res.data["is_primary"] is True
    assert res.data["end_date"] is None
    assert res.data["site_name"] == "Main St House"

    res = api_client.post(
        PLACEMENTS,
        {
            "participant_id": str(participant.id),
            "site_id": str(respite.id),
            "start_date": "2026-03-02",
            "end_date": "2026-03-08",
        },
        format="json",
        **scope,
    )
    assert res.status_code == 201, res.data
    respite_id = res.data["id"]

    res = api_client.get(f"{PLACEMENTS}?participant={participant.id}", **scope)
    assert [p["site_id"] for p in res.data["results"]] == [str(respite.id), str(work_site.id)]

    res = api_client.get(f"{PLACEMENTS}?site={respite.id}", **scope)
    assert res.data["count"] == 1

    assert api_client.delete(f"{PLACEMENTS}{respite_id}/", **scope).status_code == 204
    assert not ParticipantSiteAssignment.objects.filter(id=respite_id).exists()
    assert ChangeLogEntry.objects.filter(action="PARTICIPANT_SITE_UNASSIGNED", entity_id=respite_id).exists()


def test_placement_validation(api_client, scope, participant, work_site, other_company):
    res = api_client.post(
        PLACEMENTS,
        {
            "participant_id": str(participant.id),
            "site_id": str(work_site.id),
            "start_date": "2026-03-08",
            "end_date": "2026-03-02",
        },
        format="json",
        **scope,
    )
    assert res.status_code == 400
    assert "end_date" in res.data["error"]["details"]

    foreign_site = WorkSite.objects.create(tenant_id=other_company.id, name="Elsewhere")
    res = api_client.post(
        PLACEMENTS,
        {"participant_id": str(participant.id), "site_id": str(foreign_site.id), "start_date": "2026-03-02"},
        format="json",
        **scope,
    )
    assert res.status_code == 404
    assert not ParticipantSiteAssignment.objects.exists()


def test_placement_roles(scope, participant, work_site, company, reviewer, staff_user):
    ParticipantSiteAssignment.objects.create(
        tenant_id=company.id, participant=participant, site=work_site, start_date="2026-01-01"
    )
    payload = {"participant_id": str(participant.id), "site_id": str(work_site.id), "start_date": "2026-02-01"}

    assert client_for(reviewer).post(PLACEMENTS, payload, format="json", **scope).status_code == 403
    assert client_for(reviewer).get(PLACEMENTS, **scope).data["count"] == 1

    staff = client_for(staff_user)
    assert staff.get(PLACEMENTS, **scope).data["count"] == 0
    StaffSiteAssignment.objects.create(tenant_id=company.id, user=staff_user, site=work_site)
    assert staff.get(PLACEMENTS, **scope).data["count"] == 1
