# ndis_core/compliance/tests/test_compliance_status_rules.py
from types import SimpleNamespace

from ndis_core.compliance.status import (
    AMBER,
    GREEN,
    RED,
    is_incident_item,
    is_number,
    missing_critical_items,
    planned_actions,
    status_color,
)


def _item(pk, title, *, critical=False, notes_required=False):
    return SimpleNamespace(id=pk, title=title, is_critical=critical, notes_required_on_fail=notes_required)


def _resp(value, notes=""):
    return SimpleNamespace(response_value=value, notes=notes)


FIRE = _item(1, "Fire exits clear", critical=True)
BINS = _item(2, "Bins emptied")
INCIDENT = _item(3, "Any incident or concern today?", notes_required=True)


def test_critical_no_is_red_even_with_other_yes():
    assert status_color([FIRE, BINS], {1: _resp("NO"), 2: _resp("YES")}) == RED


def test_non_critical_no_is_amber():
    assert status_color([FIRE, BINS], {1: _resp("YES"), 2: _resp("NO")}) == AMBER


def test_all_yes_or_na_is_green():
    assert status_color([FIRE, BINS], {1: _resp("YES"), 2: _resp("NA")}) == GREEN


def test_unanswered_items_do_not_change_colour():
    assert status_color([FIRE, BINS], {}) == GREEN


def test_missing_critical_items_lists_only_unanswered_criticals():
    other_critical = _item(4, "Medication chart signed", critical=True)
    missing = missing_critical_items([FIRE, BINS, other_critical], {1: _resp("  ")})
    assert [i.title for i in missing] == ["Fire exits clear", "Medication chart signed"]


def test_one_action_per_no_with_severity_from_criticality():
    actions = planned_actions([FIRE, BINS], {1: _resp("NO"), 2: _resp("NO", notes="Bin lid broken")})

    assert [(a.title, a.severity) for a in actions] == [("Fire exits clear", "HIGH"), ("Bins emptied", "MEDIUM")]
    assert actions[0].description == "Non-compliant response for: Fire exits clear"
    assert actions[1].description == "Bin lid broken"


def test_incident_yes_without_notes_raises_missing_details_action():
    actions = planned_actions([INCIDENT], {3: _resp("YES")})

    assert len(actions) == 1
    assert actions[0].title == "Any incident or concern today? - Missing Details"
    assert actions[0].severity == "MEDIUM"


def test_incident_yes_with_notes_raises_nothing():
    assert planned_actions([INCIDENT], {3: _resp("YES", notes="Minor fall, first aid given")}) == []


def test_incident_keyword_match_is_case_insensitive():
    assert is_incident_item("Restrictive Practice used?")
    assert is_incident_item("Any CONCERN raised")
    assert not is_incident_item("Bins emptied")


def test_is_number():
    assert is_number("36.6")
    assert is_number(" 4 ")
    assert not is_number("nan")
    assert not is_number("four")
    assert not is_number(None)
