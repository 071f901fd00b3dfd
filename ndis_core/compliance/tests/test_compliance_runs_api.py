# ndis_core/compliance/tests/test_compliance_runs_api.py
import pytest

from ndis_core.changelog.models import ChangeLogEntry
from ndis_core.compliance.models import ComplianceAction, ComplianceRun, RunStatus
from ndis_core.compliance.selectors import ComplianceRunSelector
from ndis_core.conftest import client_for
from ndis_core.sites.models import StaffSiteAssignment

pytestmark = pytest.mark.django_db

RUNS = "/api/v1/compliance/runs/"


def _item_id(template, title):
    return str(template.items.get(title=title).id)


def _create_run(client, scope, template, site, day="2026-03-02"):
    return client.post(
        RUNS,
        {"template_id": str(template.id), "site_id": str(site.id), "date": day},
        format="json",
        **scope,
    )


def _respond(client, scope, run_id, item_id, value, **extra):
    return client.post(
        f"{RUNS}{run_id}/respond/",
        {"template_item_id": item_id, "response_value": value, **extra},
        format="json",
        **scope,
    )


def test_critical_no_submits_red_with_one_high_action(api_client, scope, site_daily_template, work_site):
    res = _create_run(api_client, scope, site_daily_template, work_site)
    assert res.status_code == 201, res.data
    run_id = res.data["id"]
    assert res.data["status"] == RunStatus.OPEN
    assert res.data["period_date"] == "2026-03-02"

    assert _respond(api_client, scope, run_id, _item_id(site_daily_template, "Fire exits clear"), "NO").status_code == 200
    assert _respond(api_client, scope, run_id, _item_id(site_daily_template, "Bins emptied"), "YES").status_code == 200

    res = api_client.post(f"{RUNS}{run_id}/submit/", {}, format="json", **scope)
    assert res.status_code == 200, res.data
    assert res.data["status_color"] == "red"
    assert res.data["run"]["status"] == RunStatus.SUBMITTED

    assert res.data["actions_created"] == 1
    actions = res.data["actions"]
    assert actions[0]["title"] == "Fire exits clear"
    assert actions[0]["severity"] == "HIGH"
    assert actions[0]["site_id"] == str(work_site.id)

    assert ChangeLogEntry.objects.filter(action="COMPLIANCE_RUN_SUBMITTED", entity_id=run_id).exists()


def test_run_detail_reports_live_colour(api_client, scope, site_daily_template, work_site):
    run_id = _create_run(api_client, scope, site_daily_template, work_site).data["id"]
    _respond(api_client, scope, run_id, _item_id(site_daily_template, "Bins emptied"), "NO")

    res = api_client.get(f"{RUNS}{run_id}/", **scope)
    assert res.status_code == 200, res.data
    assert res.data["status_color"] == "amber"
    assert [i["title"] for i in res.data["items"]] == ["Fire exits clear", "Bins emptied"]
    assert len(res.data["responses"]) == 1


def test_responding_twice_updates_the_same_response(api_client, scope, site_daily_template, work_site):
    run_id = _create_run(api_client, scope, site_daily_template, work_site).data["id"]
    item_id = _item_id(site_daily_template, "Bins emptied")

    first = _respond(api_client, scope, run_id, item_id, "NO")
    second = _respond(api_client, scope, run_id, item_id, "yes")

    assert first.data["id"] == second.data["id"]
    assert second.data["response_value"] == "YES"


def test_duplicate_run_for_same_day_conflicts(api_client, scope, site_daily_template, work_site):
    first = _create_run(api_client, scope, site_daily_template, work_site)
    assert first.status_code == 201

    res = _create_run(api_client, scope, site_daily_template, work_site)
    assert res.status_code == 409, res.data
    assert res.data["error"]["code"] == "conflict"
    assert res.data["error"]["details"]["existing_run_id"] == first.data["id"]
    assert ComplianceRun.objects.count() == 1


def test_other_day_is_a_new_run(api_client, scope, site_daily_template, work_site):
    assert _create_run(api_client, scope, site_daily_template, work_site, day="2026-03-02").status_code == 201
    assert _create_run(api_client, scope, site_daily_template, work_site, day="2026-03-03").status_code == 201


def test_submit_blocked_while_critical_item_unanswered(api_client, scope, site_daily_template, work_site):
    run_id = _create_run(api_client, scope, site_daily_template, work_site).data["id"]
    _respond(api_client, scope, run_id, _item_id(site_daily_template, "Bins emptied"), "YES")

    res = api_client.post(f"{RUNS}{run_id}/submit/", {}, format="json", **scope)
    assert res.status_code == 400, res.data
    assert res.data["error"]["code"] == "validation_error"
    assert res.data["error"]["details"]["missing_critical_items"] == ["Fire exits clear"]
    assert ComplianceRun.objects.get(id=run_id).status == RunStatus.OPEN
    assert ComplianceAction.objects.count() == 0


def test_submitted_run_rejects_responses_and_resubmit(api_client, scope, site_daily_template, work_site):
    run_id = _create_run(api_client, scope, site_daily_template, work_site).data["id"]
    fire = _item_id(site_daily_template, "Fire exits clear")
    _respond(api_client, scope, run_id, fire, "YES")
    assert api_client.post(f"{RUNS}{run_id}/submit/", {}, format="json", **scope).status_code == 200

    res = _respond(api_client, scope, run_id, fire, "NO")
    assert res.status_code == 409
    assert res.data["error"]["code"] == "precondition_failed"

    res = api_client.post(f"{RUNS}{run_id}/submit/", {}, format="json", **scope)
    assert res.status_code == 409


def test_invalid_yes_no_value_rejected(api_client, scope, site_daily_template, work_site):
    run_id = _create_run(api_client, scope, site_daily_template, work_site).data["id"]

    res = _respond(api_client, scope, run_id, _item_id(site_daily_template, "Bins emptied"), "MAYBE")
    assert res.status_code == 400
    assert "response_value" in res.data["error"]["details"]


def test_item_from_another_template_rejected(api_client, scope, site_daily_template, participant_weekly_template, work_site):
    run_id = _create_run(api_client, scope, site_daily_template, work_site).data["id"]

    res = _respond(api_client, scope, run_id, _item_id(participant_weekly_template, "Any incident this week?"), "YES")
    assert res.status_code == 400
    assert "template_item_id" in res.data["error"]["details"]


def test_number_item_validates_value(api_client, scope, participant_weekly_template, participant):
    res = api_client.post(
        RUNS,
        {
            "template_id": str(participant_weekly_template.id),
            "participant_id": str(participant.id),
            "period_start": "2026-03-02",
            "period_end": "2026-03-08",
        },
        format="json",
        **scope,
    )
    assert res.status_code == 201, res.data
    run_id = res.data["id"]
    item_id = _item_id(participant_weekly_template, "Number of incidents")

    assert _respond(api_client, scope, run_id, item_id, "three").status_code == 400
    assert _respond(api_client, scope, run_id, item_id, "3").status_code == 200


def test_weekly_template_requires_period_dates(api_client, scope, participant_weekly_template, participant):
    res = api_client.post(
        RUNS,
        {"template_id": str(participant_weekly_template.id), "participant_id": str(participant.id)},
        format="json",
        **scope,
    )
    assert res.status_code == 400
    assert "period_start" in res.data["error"]["details"]


def test_site_template_requires_site(api_client, scope, site_daily_template):
    res = api_client.post(RUNS, {"template_id": str(site_daily_template.id)}, format="json", **scope)
    assert res.status_code == 400
    assert "site_id" in res.data["error"]["details"]


def test_incident_yes_without_notes_raises_missing_details_action(
    api_client, scope, participant_weekly_template, participant
):
    run_id = api_client.post(
        RUNS,
        {
            "template_id": str(participant_weekly_template.id),
            "participant_id": str(participant.id),
            "period_start": "2026-03-02",
            "period_end": "2026-03-08",
        },
        format="json",
        **scope,
    ).data["id"]
    _respond(api_client, scope, run_id, _item_id(participant_weekly_template, "Any incident this week?"), "YES")

    res = api_client.post(f"{RUNS}{run_id}/submit/", {}, format="json", **scope)
    assert res.status_code == 200, res.data
    assert res.data["status_color"] == "green"
    assert res.data["actions_created"] == 1
    assert [a["title"] for a in res.data["actions"]] == ["Any incident this week? - Missing Details"]
    assert res.data["actions"][0]["participant_id"] == str(participant.id)


def test_staff_needs_site_assignment_to_create_run(company, staff_user, site_daily_template, work_site, scope):
    client = client_for(staff_user)

    res = _create_run(client, scope, site_daily_template, work_site)
    assert res.status_code == 403, res.data

    StaffSiteAssignment.objects.create(tenant_id=company.id, user=staff_user, site=work_site)
    res = _create_run(client, scope, site_daily_template, work_site)
    assert res.status_code == 201, res.data


def test_run_from_inactive_template_rejected(api_client, scope, site_daily_template, work_site):
    site_daily_template.is_active = False
    site_daily_template.save(update_fields=["is_active"])

    res = _create_run(api_client, scope, site_daily_template, work_site)
    assert res.status_code == 400
    assert "template_id" in res.data["error"]["details"]


def test_runs_are_company_scoped(other_company, site_daily_template, work_site, api_client, scope):
    from ndis_core.conftest import make_member, scope_headers
    from ndis_core.iam.models import CompanyRole

    run_id = _create_run(api_client, scope, site_daily_template, work_site).data["id"]

    outsider = make_member(other_company, "outsider", CompanyRole.COMPANY_ADMIN)
    res = client_for(outsider).get(f"{RUNS}{run_id}/", **scope_headers(other_company))
    assert res.status_code == 404


def test_respond_locks_the_run_row(api_client, scope, site_daily_template, work_site, monkeypatch):
    run_id = _create_run(api_client, scope, site_daily_template, work_site).data["id"]

    calls = []
    original = ComplianceRunSelector.get_run

    def recording_get_run(**kwargs):
        calls.append(kwargs)
        return original(**kwargs)

    monkeypatch.setattr(ComplianceRunSelector, "get_run", staticmethod(recording_get_run))

    res = _respond(api_client, scope, run_id, _item_id(site_daily_template, "Bins emptied"), "YES")
    assert res.status_code == 200, res.data
    assert calls and all(call.get("for_update") for call in calls)


def test_respond_after_submit_is_refused(api_client, scope, site_daily_template, work_site):
    run_id = _create_run(api_client, scope, site_daily_template, work_site).data["id"]
    _respond(api_client, scope, run_id, _item_id(site_daily_template, "Fire exits clear"), "YES")
    assert api_client.post(f"{RUNS}{run_id}/submit/", {}, format="json", **scope).status_code == 200

    res = _respond(api_client, scope, run_id, _item_id(site_daily_template, "Bins emptied"), "NO")
    assert res.status_code == 409
    assert res.data["error"]["code"] == "precondition_failed"
