# ndis_core/changelog/tests/test_changelog_api.py
import pytest

from ndis_core.changelog.models import ActorType, ChangeLogEntry
from ndis_core.changelog.services import ChangeLogService, snapshot
from ndis_core.conftest import client_for, make_member, scope_headers
from ndis_core.iam.models import CompanyRole

pytestmark = pytest.mark.django_db

CHANGELOG = "/api/v1/changelog/"


def test_entries_are_immutable(company, user, work_site):
    ChangeLogService.log(
        action="WORK_SITE_CREATED",
        entity_type="work_site",
        entity_id=work_site.id,
        tenant_id=company.id,
        actor_user_id=user.id,
        after=snapshot(work_site, ("name", "tenant_id")),
    )
    entry = ChangeLogEntry.objects.get(entity_id=work_site.id)
    assert entry.after_json == {"name": "Main St House", "tenant_id": str(company.id)}
    assert entry.actor_type == ActorType.COMPANY_USER

    entry.action = "TAMPERED"
    with pytest.raises(ValueError):
        entry.save()


def test_entries_without_actor_are_system(company, work_site):
    ChangeLogService.log(
        action="WORK_SITE_UPDATED", entity_type="work_site", entity_id=work_site.id, tenant_id=company.id, actor_user_id=None
    )
    assert ChangeLogEntry.objects.get(entity_id=work_site.id).actor_type == ActorType.SYSTEM


def test_list_filters_and_limit(api_client, scope, user, started_audit):
    res = api_client.get(f"{CHANGELOG}?entity_type=audit&entity_id={started_audit.id}", **scope)
    assert res.status_code == 200
    assert [e["action"] for e in res.data] == ["AUDIT_STARTED", "AUDIT_TEMPLATE_SELECTED", "AUDIT_CREATED"]

    res = api_client.get(f"{CHANGELOG}?action=AUDIT_STARTED&actor_user_id={user.id}", **scope)
    assert len(res.data) == 1
    assert res.data[0]["after_json"]["status"] == "IN_PROGRESS"

    res = api_client.get(f"{CHANGELOG}?entity_type=audit&limit=1", **scope)
    assert len(res.data) == 1

    res = api_client.get(f"{CHANGELOG}?entity_id=nope", **scope)
    assert res.status_code == 400


def test_other_companies_entries_are_hidden(other_company, started_audit):
    outsider = make_member(other_company, "outsider", CompanyRole.COMPANY_ADMIN)
    res = client_for(outsider).get(CHANGELOG, **scope_headers(other_company))
    assert res.status_code == 200
    assert res.data == []


def test_auditor_cannot_read_changelog(auditor, scope):
    assert client_for(auditor).get(CHANGELOG, **scope).status_code == 403
