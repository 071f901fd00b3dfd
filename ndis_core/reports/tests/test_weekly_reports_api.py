# ndis_core/reports/tests/test_weekly_reports_api.py
from datetime import date

import pytest

from ndis_core.changelog.models import ChangeLogEntry
from ndis_core.compliance.models import ComplianceFrequency, ComplianceScopeType, ComplianceTemplate
from ndis_core.compliance.services import ComplianceRunService
from ndis_core.conftest import client_for
from ndis_core.iam.models import CompanyRole
from ndis_core.reports.generation import GenerationError, GenerationResult
from ndis_core.reports.models import AiGenerationLog, ReportStatus, WeeklyComplianceReport

pytestmark = pytest.mark.django_db

REPORTS = "/api/v1/weekly-reports/"


class FakeGenerator:
    model = "fake-model"

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def generate(self, *, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        if self.fail:
            raise GenerationError("rate limited")
        return GenerationResult(text="1) Period Overview\nAll checks completed.", model="fake-model-2026")


@pytest.fixture
def fake_generator(monkeypatch):
    gen = FakeGenerator()
    monkeypatch.setattr("ndis_core.reports.services.get_generator", lambda: gen)
    return gen


def _answer_and_submit(company, user, template, participant, answers, **period):
    run = ComplianceRunService.create_run(
        tenant_id=company.id,
        template_id=template.id,
        participant_id=participant.id,
        actor_user_id=user.id,
        actor_role=CompanyRole.COMPANY_ADMIN,
        **period,
    )
    for title, (value, notes) in answers.items():
        ComplianceRunService.respond(
            tenant_id=company.id,
            run_id=run.id,
            template_item_id=template.items.get(title=title).id,
            response_value=value,
            notes=notes,
            actor_user_id=user.id,
        )
    ComplianceRunService.submit(tenant_id=company.id, run_id=run.id, actor_user_id=user.id)
    return run


@pytest.fixture
def week_of_runs(company, user, participant, participant_weekly_template):
    daily = ComplianceTemplate.objects.create(
        tenant_id=company.id,
        name="Daily participant check",
        scope_type=ComplianceScopeType.PARTICIPANT,
        frequency=ComplianceFrequency.DAILY,
    )
    daily.items.create(tenant_id=company.id, title="Medication administered as charted", is_critical=True, sort_order=1)
    daily.items.create(tenant_id=company.id, title="PRN administered", sort_order=2)

    _answer_and_submit(
        company,
        user,
        daily,
        participant,
        {"Medication administered as charted": ("NO", "Evening dose missed"), "PRN administered": ("YES", "")},
        day=date(2026, 3, 3),
    )
    _answer_and_submit(
        company,
        user,
        participant_weekly_template,
        participant,
        {"Any incident this week?": ("YES", "Minor fall on Tuesday"), "Number of incidents": ("2", "")},
        period_start=date(2026, 3, 2),
        period_end=date(2026, 3, 8),
    )


def _generate(client, scope, participant, start="2026-03-02", end="2026-03-08"):
    return client.post(
        f"{REPORTS}generate/",
        {"participant_id": str(participant.id), "period_start": start, "period_end": end},
        format="json",
        **scope,
    )


def test_generate_creates_draft_report_and_success_log(api_client, scope, participant, week_of_runs, fake_generator):
    res = _generate(api_client, scope, participant)
    assert res.status_code == 201, res.data

    assert res.data["report_status"] == ReportStatus.DRAFT
    assert res.data["generation_source"] == "AI"
    assert res.data["model_name"] == "fake-model-2026"
    assert res.data["prompt_version"] == "1.0.0"
    assert len(res.data["input_hash"]) == 64

    metrics = res.data["metrics"]
    assert metrics["daily_runs_completed_count"] == 1
    assert metrics["weekly_runs_completed_count"] == 1
    assert metrics["critical_failures_count"] == 1
    assert metrics["incident_days_count"] == 1
    assert metrics["weekly_incident_count"] == 2
    assert metrics["medication_non_compliance_days_count"] == 1
    assert metrics["prn_flag"] is True
    assert metrics["open_actions_by_severity"]["HIGH"] == 1
    assert metrics["overall_status"] == "RED"

    log = AiGenerationLog.objects.get()
    assert log.success is True
    assert log.feature_key == "WEEKLY_COMPLIANCE_REPORT"
    assert log.input_hash == res.data["input_hash"]
    assert ChangeLogEntry.objects.filter(action="WEEKLY_REPORT_GENERATED", entity_id=res.data["id"]).exists()

    _, user_prompt = fake_generator.calls[0]
    assert "Medication administered as charted: NO (Notes: Evening dose missed) [CRITICAL]" in user_prompt


def test_same_inputs_hash_identically(api_client, scope, participant, week_of_runs, fake_generator):
    first = _generate(api_client, scope, participant)
    second = _generate(api_client, scope, participant)

    assert first.data["input_hash"] == second.data["input_hash"]
    assert WeeklyComplianceReport.objects.count() == 2


def test_generation_failure_is_502_and_logged(api_client, scope, participant, week_of_runs, monkeypatch):
    monkeypatch.setattr("ndis_core.reports.services.get_generator", lambda: FakeGenerator(fail=True))

    res = _generate(api_client, scope, participant)
    assert res.status_code == 502, res.data
    assert res.data["error"]["code"] == "external_dependency_failure"
    assert "rate limited" not in res.data["error"]["message"]

    log = AiGenerationLog.objects.get()
    assert log.success is False
    assert log.error_message == "rate limited"
    assert WeeklyComplianceReport.objects.count() == 0


def test_no_runs_in_period_is_400(api_client, scope, participant, week_of_runs, fake_generator):
    res = _generate(api_client, scope, participant, start="2026-04-06", end="2026-04-12")
    assert res.status_code == 400
    assert fake_generator.calls == []
    assert AiGenerationLog.objects.count() == 0


def test_reviewer_reads_but_cannot_generate(reviewer, scope, participant, week_of_runs, fake_generator):
    client = client_for(reviewer)
    assert client.get(REPORTS, **scope).status_code == 200
    assert _generate(client, scope, participant).status_code == 403


def test_staff_read_reports_but_cannot_edit(staff_user, scope, participant, week_of_runs, fake_generator, api_client):
    report_id = _generate(api_client, scope, participant).data["id"]
    client = client_for(staff_user)

    assert client.get(REPORTS, **scope).status_code == 200
    assert client.get(f"{REPORTS}{report_id}/", **scope).status_code == 200
    res = client.patch(f"{REPORTS}{report_id}/", {"report_status": "FINAL"}, format="json", **scope)
    assert res.status_code == 403


def test_edit_and_finalise(api_client, scope, participant, week_of_runs, fake_generator):
    report_id = _generate(api_client, scope, participant).data["id"]

    res = api_client.patch(
        f"{REPORTS}{report_id}/",
        {"report_text": "Edited narrative", "report_status": ReportStatus.FINAL},
        format="json",
        **scope,
    )
    assert res.status_code == 200, res.data
    assert res.data["report_text"] == "Edited narrative"
    assert res.data["report_status"] == ReportStatus.FINAL

    res = api_client.get(f"{REPORTS}?participant={participant.id}&report_status=FINAL", **scope)
    assert [r["id"] for r in res.data["results"]] == [report_id]
