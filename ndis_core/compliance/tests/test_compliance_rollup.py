# ndis_core/compliance/tests/test_compliance_rollup.py
from datetime import date

import pytest

from ndis_core.compliance.selectors import compliance_rollup
from ndis_core.compliance.services import ComplianceRunService
from ndis_core.iam.models import CompanyRole

pytestmark = pytest.mark.django_db


def _submitted_run(company, user, template, site, day, answers):
    run = ComplianceRunService.create_run(
        tenant_id=company.id,
        template_id=template.id,
        site_id=site.id,
        day=day,
        actor_user_id=user.id,
        actor_role=CompanyRole.COMPANY_ADMIN,
    )
    for title, value in answers.items():
        ComplianceRunService.respond(
            tenant_id=company.id,
            run_id=run.id,
            template_item_id=template.items.get(title=title).id,
            response_value=value,
            actor_user_id=user.id,
        )
    ComplianceRunService.submit(tenant_id=company.id, run_id=run.id, actor_user_id=user.id)
    return run


@pytest.fixture
def three_days(company, user, site_daily_template, work_site):
    _submitted_run(company, user, site_daily_template, work_site, date(2026, 3, 2), {"Fire exits clear": "NO"})
    _submitted_run(
        company, user, site_daily_template, work_site, date(2026, 3, 3), {"Fire exits clear": "YES", "Bins emptied": "NO"}
    )
    _submitted_run(company, user, site_daily_template, work_site, date(2026, 3, 4), {"Fire exits clear": "YES"})


def test_rollup_counts_colours_and_open_actions(company, three_days):
    data = compliance_rollup(tenant_id=company.id)

    assert data["runs"] == {"red": 1, "amber": 1, "green": 1, "total": 3}
    assert data["open_actions"] == {"HIGH": 1, "MEDIUM": 1, "LOW": 0}


def test_rollup_is_repeatable(company, three_days):
    assert compliance_rollup(tenant_id=company.id) == compliance_rollup(tenant_id=company.id)


def test_rollup_period_window(company, three_days):
    data = compliance_rollup(tenant_id=company.id, period_start=date(2026, 3, 3), period_end=date(2026, 3, 4))

    assert data["runs"] == {"red": 0, "amber": 1, "green": 1, "total": 2}
    assert data["open_actions"]["HIGH"] == 0


def test_open_runs_are_not_counted(company, user, site_daily_template, work_site):
    ComplianceRunService.create_run(
        tenant_id=company.id,
        template_id=site_daily_template.id,
        site_id=work_site.id,
        day=date(2026, 3, 5),
        actor_user_id=user.id,
        actor_role=CompanyRole.COMPANY_ADMIN,
    )
    assert compliance_rollup(tenant_id=company.id)["runs"]["total"] == 0


def test_rollup_endpoint(api_client, scope, three_days, work_site):
    res = api_client.get(
        f"/api/v1/compliance/rollup/?site={work_site.id}&period_start=2026-03-02&period_end=2026-03-02",
        **scope,
    )
    assert res.status_code == 200, res.data
    assert res.data["runs"]["red"] == 1
    assert res.data["runs"]["total"] == 1


def test_rollup_endpoint_rejects_inverted_window(api_client, scope):
    res = api_client.get("/api/v1/compliance/rollup/?period_start=2026-03-05&period_end=2026-03-01", **scope)
    assert res.status_code == 400
