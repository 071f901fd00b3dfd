# ndis_core/conftest.py
import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from ndis_core.iam.models import CompanyMembership, CompanyRole
from ndis_core.tenants.models import Company


def scope_headers(company):
    """
    Standard scope header used by the scope resolver.
    DRF test client requires HTTP_ prefix.
    """
    return {"HTTP_X_TENANT_ID": str(company.id)}


def make_member(company, username, role):
    user = get_user_model().objects.create_user(username=username, password="testpass", is_active=True)
    CompanyMembership.objects.create(company=company, user=user, role=role, is_active=True)
    return user


def client_for(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def company(db):
    return Company.objects.create(code="test-company", name="Test Company")


@pytest.fixture
def other_company(db):
    return Company.objects.create(code="other-company", name="Other Company")


@pytest.fixture
def user(db, company):
    """CompanyAdmin member of `company`."""
    return make_member(company, "testuser", CompanyRole.COMPANY_ADMIN)


@pytest.fixture
def auditor(db, company):
    return make_member(company, "auditor", CompanyRole.AUDITOR)


@pytest.fixture
def reviewer(db, company):
    return make_member(company, "reviewer", CompanyRole.REVIEWER)


@pytest.fixture
def staff_user(db, company):
    return make_member(company, "staff", CompanyRole.STAFF_READ_ONLY)


@pytest.fixture
def api_client(user):
    return client_for(user)


@pytest.fixture
def scope(company):
    return scope_headers(company)


@pytest.fixture
def catalogue(db, company):
    """
    Seeded global catalogue + the company delivering every active line item.
    Returns the list of active line items.
    """
    from ndis_core.catalogue.models import CompanyServiceSelection, SupportLineItem
    from ndis_core.catalogue.services import CatalogueService

    CatalogueService.seed_catalogue()
    CatalogueService.ensure_default_domains(tenant_id=company.id)

    items = list(SupportLineItem.objects.filter(is_active=True).order_by("sort_order", "item_code"))
    CompanyServiceSelection.objects.bulk_create(
        [CompanyServiceSelection(tenant_id=company.id, line_item=li) for li in items]
    )
    return items


@pytest.fixture
def service_context_label():
    from ndis_core.catalogue.seed import CATEGORIES

    return CATEGORIES[0]["category_label"]


@pytest.fixture
def work_site(db, company):
    from ndis_core.sites.models import WorkSite

    return WorkSite.objects.create(tenant_id=company.id, name="Main St House", site_type="SIL")


@pytest.fixture
def participant(db, company, work_site):
    from ndis_core.sites.models import Participant

    return Participant.objects.create(
        tenant_id=company.id,
        first_name="Alex",
        last_name="Citizen",
        display_name="Alex C",
        ndis_number="430000001",
        primary_site=work_site,
    )


@pytest.fixture
def audit_template(db, company):
    """Audit template with three indicators (second one critical)."""
    from ndis_core.audits.models import AuditTemplate, AuditTemplateIndicator, RiskLevel

    tpl = AuditTemplate.objects.create(tenant_id=company.id, name="Core Module", version="1")
    for i, (text, risk, critical) in enumerate(
        [
            ("Policies are current", RiskLevel.MEDIUM, False),
            ("Incident register maintained", RiskLevel.HIGH, True),
            ("Staff screening checks on file", RiskLevel.MEDIUM, False),
        ],
        start=1,
    ):
        AuditTemplateIndicator.objects.create(
            tenant_id=company.id,
            template=tpl,
            indicator_text=text,
            risk_level=risk,
            is_critical_control=critical,
            sort_order=i,
        )
    return tpl


@pytest.fixture
def site_daily_template(db, company):
    """Daily site checklist: "Fire exits clear" (critical) + "Bins emptied"."""
    from ndis_core.compliance.models import ComplianceFrequency, ComplianceScopeType, ComplianceTemplate

    tpl = ComplianceTemplate.objects.create(
        tenant_id=company.id,
        name="Daily house check",
        scope_type=ComplianceScopeType.SITE,
        frequency=ComplianceFrequency.DAILY,
    )
    tpl.items.create(tenant_id=company.id, title="Fire exits clear", is_critical=True, sort_order=1)
    tpl.items.create(tenant_id=company.id, title="Bins emptied", sort_order=2)
    return tpl


@pytest.fixture
def participant_weekly_template(db, company):
    from ndis_core.compliance.models import ComplianceFrequency, ComplianceScopeType, ComplianceTemplate, ResponseType

    tpl = ComplianceTemplate.objects.create(
        tenant_id=company.id,
        name="Weekly participant review",
        scope_type=ComplianceScopeType.PARTICIPANT,
        frequency=ComplianceFrequency.WEEKLY,
    )
    tpl.items.create(tenant_id=company.id, title="Any incident this week?", notes_required_on_fail=True, sort_order=1)
    tpl.items.create(
        tenant_id=company.id, title="Number of incidents", response_type=ResponseType.NUMBER, sort_order=2
    )
    return tpl


@pytest.fixture
def started_audit(db, company, user, catalogue, service_context_label, audit_template):
    """INTERNAL audit with `audit_template` selected, IN_PROGRESS."""
    from ndis_core.audits.services import AuditService

    audit = AuditService.create_audit(
        tenant_id=company.id,
        actor_user_id=user.id,
        audit_type="INTERNAL",
        title="Quarterly internal audit",
        service_context_label=service_context_label,
        line_item_ids=[catalogue[0].id],
    )
    AuditService.select_template(
        tenant_id=company.id, audit_id=audit.id, template_id=audit_template.id, actor_user_id=user.id
    )
    return AuditService.start(tenant_id=company.id, audit_id=audit.id, actor_user_id=user.id)
