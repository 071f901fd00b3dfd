# ndis_core/reports/prompts.py
"""
Prompt text for the weekly compliance narrative.

Bump WEEKLY_REPORT_PROMPT_VERSION whenever either prompt changes; it is stored
on every report and generation log.
"""
from __future__ import annotations

from typing import Any

WEEKLY_REPORT_PROMPT_VERSION = "1.0.0"

NOT_RECORDED = "Not recorded in checklist entries"

REPORT_HEADINGS = (
    "Period Overview - Summary of the reporting period, number of checks completed, overall compliance status",
    "Support Delivery and Documentation - Summary of support delivery, case notes, and care plan alignment",
    "Incidents and Safeguards - Summary of any incidents reported, restrictive practices (if any), and safety concerns",
    "Medication and Health - Summary of medication compliance, PRN usage, and health-related observations",
    "Actions and Follow-up - Summary of open actions, their severity, and recommended follow-up",
    "Overall Compliance Status - Final assessment (GREEN/AMBER/RED) with brief justification",
)

SYSTEM_PROMPT = (
    "You are a compliance report writer for an Australian NDIS (National Disability Insurance Scheme) provider. "
    "Generate a professional weekly compliance summary for a participant based ONLY on the data provided.\n"
    "\n"
    "STRICT RULES - YOU MUST FOLLOW:\n"
    "1. ONLY summarize facts from the provided checklist entries and actions - do NOT invent or assume any information\n"
    "2. Never include specific medical diagnoses, disability types, or sensitive health details\n"
    "3. Use factual, neutral, professional language appropriate for NDIS care documentation\n"
    f'4. If something is not recorded in the entries, explicitly state "{NOT_RECORDED}"\n'
    "5. Reference specific dates when describing compliance issues or incidents\n"
    "\n"
    "REQUIRED REPORT STRUCTURE (use these exact headings):\n"
    + "\n".join(f"{i}) {heading}" for i, heading in enumerate(REPORT_HEADINGS, start=1))
    + "\n\nKeep the report factual and concise (300-500 words maximum)."
)


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _entry_lines(summary: dict[str, Any]) -> str:
    lines = [f"{summary['date']} - {summary['template_name']} ({summary['frequency']}):"]
    for r in summary["item_responses"]:
        line = f"  - {r['title']}: {r['value']}"
        if r["notes"]:
            line += f" (Notes: {r['notes']})"
        if r["is_critical"]:
            line += " [CRITICAL]"
        lines.append(line)
    return "\n".join(lines)


def build_user_prompt(report_input: dict[str, Any]) -> str:
    m = report_input["metrics"]
    open_actions = m["open_actions_by_severity"]

    entries = "\n\n".join(_entry_lines(s) for s in report_input["run_summaries"])
    if report_input["actions"]:
        actions = "\n".join(
            f"- {a['created_at']}: {a['title']} ({a['severity']}, {a['status']})" for a in report_input["actions"]
        )
    else:
        actions = "No actions created this period"

    return (
        f'Generate a weekly compliance summary for participant "{report_input["participant_name"]}" '
        f"covering the period {report_input['period_start']} to {report_input['period_end']}.\n"
        "\n"
        "METRICS:\n"
        f"- Daily checks completed: {m['daily_runs_completed_count']}\n"
        f"- Weekly checks completed: {m['weekly_runs_completed_count']}\n"
        f"- Critical failures: {m['critical_failures_count']}\n"
        f"- Days with incidents reported: {m['incident_days_count']}\n"
        f"- Weekly incident count: {m['weekly_incident_count']}\n"
        f"- Medication non-compliance days: {m['medication_non_compliance_days_count']}\n"
        f"- Weekly medication compliance: {m['weekly_medication_compliant']}\n"
        f"- PRN usage noted: {_yes_no(m['prn_flag'])}\n"
        f"- Restrictive practices used: {_yes_no(m['restrictive_practices_used'])}\n"
        f"- Open HIGH actions: {open_actions['HIGH']}\n"
        f"- Open MEDIUM actions: {open_actions['MEDIUM']}\n"
        f"- Overall Status: {m['overall_status']}\n"
        "\n"
        "CHECKLIST ENTRIES:\n"
        f"{entries}\n"
        "\n"
        "COMPLIANCE ACTIONS CREATED:\n"
        f"{actions}\n"
        "\n"
        "Based STRICTLY on this data, provide a professional weekly compliance summary following the required structure."
    )
