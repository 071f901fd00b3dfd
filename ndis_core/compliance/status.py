# ndis_core/compliance/status.py
"""
Pure run-outcome rules shared by submit and the rollup.

Nothing here touches the database: callers pass template items and a
{template_item_id: response} mapping.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

RED = "red"
AMBER = "amber"
GREEN = "green"

ANSWER_YES = "YES"
ANSWER_NO = "NO"
ANSWER_NA = "NA"
YES_NO_NA_VALUES = (ANSWER_YES, ANSWER_NO, ANSWER_NA)

INCIDENT_KEYWORDS = ("incident", "concern", "restrictive practice")


@dataclass(frozen=True)
class PlannedAction:
    template_item_id: Any
    title: str
    description: str
    severity: str


def _value(response) -> str:
    if response is None:
        return ""
    return (getattr(response, "response_value", "") or "").strip()


def _notes(response) -> str:
    if response is None:
        return ""
    return (getattr(response, "notes", "") or "").strip()


def status_color(items: Iterable, responses: Mapping[Any, Any]) -> str:
    """
    Any critical NO -> red; else any NO -> amber; else green.
    """
    any_no = False
    for item in items:
        if _value(responses.get(item.id)) == ANSWER_NO:
            if item.is_critical:
                return RED
            any_no = True
    return AMBER if any_no else GREEN


def missing_critical_items(items: Iterable, responses: Mapping[Any, Any]) -> list:
    return [item for item in items if item.is_critical and not _value(responses.get(item.id))]


def is_incident_item(title: str) -> bool:
    lowered = (title or "").lower()
    return any(kw in lowered for kw in INCIDENT_KEYWORDS)


def severity_for(item) -> str:
    return "HIGH" if item.is_critical else "MEDIUM"


def planned_actions(items: Iterable, responses: Mapping[Any, Any]) -> list[PlannedAction]:
    """
    One action per NO answer, plus one for an incident-type item answered YES
    without the notes it requires.
    """
    out: list[PlannedAction] = []
    for item in items:
        response = responses.get(item.id)
        value = _value(response)

        if value == ANSWER_NO:
            out.append(
                PlannedAction(
                    template_item_id=item.id,
                    title=item.title,
                    description=_notes(response) or f"Non-compliant response for: {item.title}",
                    severity=severity_for(item),
                )
            )

        if (
            value == ANSWER_YES
            and getattr(item, "notes_required_on_fail", False)
            and is_incident_item(item.title)
            and not _notes(response)
        ):
            out.append(
                PlannedAction(
                    template_item_id=item.id,
                    title=f"{item.title} - Missing Details",
                    description=f"Incident/concern flagged but no notes provided for: {item.title}",
                    severity=severity_for(item),
                )
            )
    return out


def is_number(value: Optional[str]) -> bool:
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return False
    return not math.isnan(parsed)
