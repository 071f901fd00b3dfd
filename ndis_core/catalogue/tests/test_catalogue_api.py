# ndis_core/catalogue/tests/test_catalogue_api.py
import pytest

from ndis_core.catalogue.models import AuditDomain, SupportCategory, SupportLineItem
from ndis_core.catalogue.selectors import find_service_context_label, service_context_key_for
from ndis_core.catalogue.services import CatalogueService
from ndis_core.conftest import client_for

pytestmark = pytest.mark.django_db

CATALOGUE = "/api/v1/catalogue/"


def test_seed_is_idempotent():
    first = CatalogueService.seed_catalogue()
    assert first.categories_created == SupportCategory.objects.count()
    assert first.line_items_created == SupportLineItem.objects.count()

    again = CatalogueService.seed_catalogue()
    assert again.categories_created == 0
    assert again.line_items_created == 0


def test_service_context_matching(catalogue):
    assert find_service_context_label("  core supports ") == "core supports"
    assert find_service_context_label("Gardening") is None
    assert find_service_context_label("") is None

    assert service_context_key_for("sil") == "SIL"
    assert service_context_key_for("Community Access") == "COMMUNITY_ACCESS"
    assert service_context_key_for("Core Supports") == "OTHER"


def test_options_groups_line_items_and_flags_selections(api_client, scope, catalogue):
    res = api_client.get(f"{CATALOGUE}options/", **scope)
    assert res.status_code == 200

    assert res.data["selected_line_item_count"] == len(catalogue)
    groups = res.data["line_items_by_category"]
    assert groups[0]["category_key"] == "CORE"
    assert all(item["is_selected"] for group in groups for item in group["items"])
    assert {c["label"] for c in res.data["service_contexts"]} >= {"Core Supports", "Therapies"}


def test_replace_service_selections(api_client, scope, catalogue, company):
    keep = [str(catalogue[0].id), str(catalogue[1].id)]
    res = api_client.put(f"{CATALOGUE}service-selections/", {"line_item_ids": keep}, format="json", **scope)
    assert res.status_code == 200, res.data
    assert sorted(li["id"] for li in res.data) == sorted(keep)

    res = api_client.get(f"{CATALOGUE}service-selections/", **scope)
    assert len(res.data) == 2

    res = api_client.put(
        f"{CATALOGUE}service-selections/",
        {"line_item_ids": ["00000000-0000-0000-0000-000000000000"]},
        format="json",
        **scope,
    )
    assert res.status_code == 400
    assert "line_item_ids" in res.data["error"]["details"]


def test_only_admin_replaces_selections(auditor, scope, catalogue):
    res = client_for(auditor).put(
        f"{CATALOGUE}service-selections/", {"line_item_ids": [str(catalogue[0].id)]}, format="json", **scope
    )
    assert res.status_code == 403


def test_audit_domains_provisioned_on_read(api_client, scope, company):
    assert not AuditDomain.objects.filter(tenant_id=company.id).exists()

    res = api_client.get("/api/v1/audit-domains/", **scope)
    assert res.status_code == 200
    assert res.data
    assert AuditDomain.objects.filter(tenant_id=company.id).count() == len(res.data)

    api_client.get("/api/v1/audit-domains/", **scope)
    assert AuditDomain.objects.filter(tenant_id=company.id).count() == len(res.data)
