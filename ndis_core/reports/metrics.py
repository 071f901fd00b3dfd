# ndis_core/reports/metrics.py
"""
Weekly report metrics, computed from runs already loaded by the caller.

Item matching is by title keyword, case-insensitive, the same way the
checklist templates are written ("Medication given as charted", "PRN
administered", "Number of incidents this week" ...).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from ndis_core.compliance.models import ActionSeverity, ActionStatus, ComplianceFrequency
from ndis_core.compliance.status import ANSWER_NA, ANSWER_NO, ANSWER_YES, is_number

OVERALL_RED = "RED"
OVERALL_AMBER = "AMBER"
OVERALL_GREEN = "GREEN"


@dataclass
class RunData:
    """A run plus its template items and responses keyed by item id."""
    run: Any
    items: list = field(default_factory=list)
    responses: dict = field(default_factory=dict)


def _value(response) -> str:
    return (response.response_value or "").strip() if response is not None else ""


def overall_status(*, critical_failures: int, actions: Iterable) -> str:
    severities = {a.severity for a in actions}
    if critical_failures > 0 or ActionSeverity.HIGH in severities:
        return OVERALL_RED
    if ActionSeverity.MEDIUM in severities:
        return OVERALL_AMBER
    return OVERALL_GREEN


def compute_metrics(run_data: list[RunData], actions: list) -> dict[str, Any]:
    critical_failures = 0
    incident_days = 0
    medication_nc_days = 0
    weekly_incident_count = 0
    weekly_medication: Optional[str] = None
    prn_flag = False
    restrictive_practices = False

    for rd in run_data:
        weekly = rd.run.frequency == ComplianceFrequency.WEEKLY
        for item in rd.items:
            response = rd.responses.get(item.id)
            if response is None:
                continue
            value = _value(response)
            title = item.title.lower()

            if item.is_critical and value == ANSWER_NO:
                critical_failures += 1
            if "incident" in title and value == ANSWER_YES:
                incident_days += 1
            if weekly and "number of incidents" in title and is_number(value):
                weekly_incident_count = int(float(value))
            if "medication" in title:
                if not weekly and value == ANSWER_NO:
                    medication_nc_days += 1
                if weekly:
                    weekly_medication = value or ANSWER_NA
            if "prn" in title and value == ANSWER_YES:
                prn_flag = True
            if "restrictive practice" in title and value == ANSWER_YES:
                restrictive_practices = True

    open_by_severity = {s: 0 for s in ActionSeverity.values}
    for a in actions:
        if a.status == ActionStatus.OPEN:
            open_by_severity[a.severity] += 1

    return {
        "daily_runs_completed_count": sum(1 for rd in run_data if rd.run.frequency == ComplianceFrequency.DAILY),
        "weekly_runs_completed_count": sum(1 for rd in run_data if rd.run.frequency == ComplianceFrequency.WEEKLY),
        "critical_failures_count": critical_failures,
        "incident_days_count": incident_days,
        "weekly_incident_count": weekly_incident_count,
        "medication_non_compliance_days_count": medication_nc_days,
        "weekly_medication_compliant": weekly_medication or ANSWER_NA,
        "prn_flag": prn_flag,
        "restrictive_practices_used": restrictive_practices,
        "open_actions_by_severity": open_by_severity,
        "overall_status": overall_status(critical_failures=critical_failures, actions=actions),
    }


def run_summary(rd: RunData) -> dict[str, Any]:
    responses = []
    critical_fails = 0
    for item in rd.items:
        response = rd.responses.get(item.id)
        if response is None:
            continue
        value = _value(response)
        if item.is_critical and value == ANSWER_NO:
            critical_fails += 1
        responses.append(
            {
                "title": item.title,
                "value": value,
                "notes": (response.notes or "").strip() or None,
                "is_critical": item.is_critical,
            }
        )
    return {
        "date": rd.run.period_date.isoformat(),
        "template_name": rd.run.template.name,
        "frequency": rd.run.frequency,
        "critical_fail_count": critical_fails,
        "item_responses": responses,
    }
