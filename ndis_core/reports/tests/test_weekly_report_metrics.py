# ndis_core/reports/tests/test_weekly_report_metrics.py
from datetime import date
from types import SimpleNamespace

from ndis_core.reports.metrics import RunData, compute_metrics, run_summary
from ndis_core.reports.prompts import NOT_RECORDED, REPORT_HEADINGS, SYSTEM_PROMPT, build_user_prompt


def _item(pk, title, critical=False):
    return SimpleNamespace(id=pk, title=title, is_critical=critical)


def _run(frequency, day, name="Checklist"):
    return SimpleNamespace(frequency=frequency, period_date=day, template=SimpleNamespace(name=name))


def _resp(value, notes=""):
    return SimpleNamespace(response_value=value, notes=notes)


def _action(severity, status="OPEN"):
    return SimpleNamespace(severity=severity, status=status)


MEDS = _item(1, "Medication administered as charted", critical=True)
PRN = _item(2, "PRN administered")
INCIDENT = _item(3, "Any incident today?")
RP = _item(4, "Restrictive practice used?")
COUNT = _item(5, "Number of incidents this week")
WEEKLY_MEDS = _item(6, "Medication reviewed")


def _week():
    return [
        RunData(run=_run("DAILY", date(2026, 3, 2)), items=[MEDS, PRN, INCIDENT], responses={1: _resp("NO"), 2: _resp("YES")}),
        RunData(run=_run("DAILY", date(2026, 3, 3)), items=[MEDS, PRN, INCIDENT], responses={1: _resp("YES"), 3: _resp("YES")}),
        RunData(
            run=_run("WEEKLY", date(2026, 3, 2)),
            items=[RP, COUNT, WEEKLY_MEDS],
            responses={4: _resp("NO"), 5: _resp("3"), 6: _resp("YES")},
        ),
    ]


def test_metrics_from_a_week_of_runs():
    m = compute_metrics(_week(), [_action("HIGH"), _action("MEDIUM", status="CLOSED")])

    assert m["daily_runs_completed_count"] == 2
    assert m["weekly_runs_completed_count"] == 1
    assert m["critical_failures_count"] == 1
    assert m["incident_days_count"] == 1
    assert m["weekly_incident_count"] == 3
    assert m["medication_non_compliance_days_count"] == 1
    assert m["weekly_medication_compliant"] == "YES"
    assert m["prn_flag"] is True
    assert m["restrictive_practices_used"] is False
    assert m["open_actions_by_severity"] == {"HIGH": 1, "MEDIUM": 0, "LOW": 0}
    assert m["overall_status"] == "RED"


def test_overall_amber_for_medium_actions_only():
    runs = [RunData(run=_run("DAILY", date(2026, 3, 2)), items=[PRN], responses={2: _resp("NO")})]
    assert compute_metrics(runs, [_action("MEDIUM", status="CLOSED")])["overall_status"] == "AMBER"


def test_overall_green_without_failures_or_actions():
    runs = [RunData(run=_run("DAILY", date(2026, 3, 2)), items=[MEDS], responses={1: _resp("YES")})]
    m = compute_metrics(runs, [])
    assert m["overall_status"] == "GREEN"
    assert m["weekly_medication_compliant"] == "NA"


def test_run_summary_counts_critical_fails():
    summary = run_summary(_week()[0])

    assert summary["date"] == "2026-03-02"
    assert summary["critical_fail_count"] == 1
    assert [r["title"] for r in summary["item_responses"]] == [MEDS.title, PRN.title]


def test_system_prompt_fixed_structure():
    for i, heading in enumerate(REPORT_HEADINGS, start=1):
        assert f"{i}) {heading}" in SYSTEM_PROMPT
    assert NOT_RECORDED in SYSTEM_PROMPT
    assert "300-500 words" in SYSTEM_PROMPT


def test_user_prompt_lists_entries_and_actions():
    runs = _week()
    report_input = {
        "participant_name": "Alex C",
        "period_start": "2026-03-02",
        "period_end": "2026-03-08",
        "metrics": compute_metrics(runs, []),
        "run_summaries": [run_summary(rd) for rd in runs],
        "actions": [],
    }
    prompt = build_user_prompt(report_input)

    assert 'participant "Alex C" covering the period 2026-03-02 to 2026-03-08' in prompt
    assert "  - Medication administered as charted: NO [CRITICAL]" in prompt
    assert "- PRN usage noted: Yes" in prompt
    assert "No actions created this period" in prompt
