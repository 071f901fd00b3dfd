# ndis_core/compliance/tests/test_compliance_templates_api.py
import pytest

from ndis_core.compliance.models import ComplianceTemplate
from ndis_core.conftest import client_for

pytestmark = pytest.mark.django_db

TEMPLATES = "/api/v1/compliance/templates/"


def test_auditor_builds_a_template(auditor, scope):
    client = client_for(auditor)

    res = client.post(
        TEMPLATES,
        {"name": "Evening SIL check", "scope_type": "SITE", "frequency": "DAILY", "applies_to_site_types": ["SIL"]},
        format="json",
        **scope,
    )
    assert res.status_code == 201, res.data
    template_id = res.data["id"]

    res = client.post(
        f"{TEMPLATES}{template_id}/items/",
        {"title": "Doors locked", "is_critical": True},
        format="json",
        **scope,
    )
    assert res.status_code == 201, res.data
    assert res.data["response_type"] == "YES_NO_NA"
    assert res.data["sort_order"] == 0

    res = client.get(f"{TEMPLATES}{template_id}/", **scope)
    assert res.status_code == 200
    assert res.data["item_count"] == 1
    assert [i["title"] for i in res.data["items"]] == ["Doors locked"]


def test_staff_reads_but_cannot_write(staff_user, scope, site_daily_template):
    client = client_for(staff_user)

    assert client.get(f"{TEMPLATES}{site_daily_template.id}/items/", **scope).status_code == 200
    res = client.post(
        f"{TEMPLATES}{site_daily_template.id}/items/", {"title": "Sneaky"}, format="json", **scope
    )
    assert res.status_code == 403


def test_list_filters_active(api_client, scope, site_daily_template, participant_weekly_template):
    participant_weekly_template.is_active = False
    participant_weekly_template.save(update_fields=["is_active"])

    res = api_client.get(f"{TEMPLATES}?is_active=true", **scope)
    assert res.status_code == 200
    assert [t["name"] for t in res.data["results"]] == ["Daily house check"]
    assert res.data["results"][0]["item_count"] == 2


def test_delete_deactivates(api_client, scope, site_daily_template):
    res = api_client.delete(f"{TEMPLATES}{site_daily_template.id}/", **scope)
    assert res.status_code == 200
    assert res.data["is_active"] is False
    assert ComplianceTemplate.objects.filter(id=site_daily_template.id).exists()


def test_update_and_delete_item(api_client, scope, site_daily_template):
    item = site_daily_template.items.get(title="Bins emptied")
    url = f"/api/v1/compliance/template-items/{item.id}/"

    res = api_client.patch(url, {"title": "Bins emptied and lids closed"}, format="json", **scope)
    assert res.status_code == 200, res.data
    assert res.data["title"] == "Bins emptied and lids closed"

    assert api_client.delete(url, **scope).status_code == 204
    assert site_daily_template.items.count() == 1
