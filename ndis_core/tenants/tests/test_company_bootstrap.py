# ndis_core/tenants/tests/test_company_bootstrap.py
import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from rest_framework.exceptions import ValidationError

from ndis_core.catalogue.models import AuditDomain
from ndis_core.iam.models import CompanyMembership, CompanyRole
from ndis_core.tenants.models import Company, CompanyStatus
from ndis_core.tenants.services import CompanyService

pytestmark = pytest.mark.django_db


def test_create_trims_and_validates():
    company = CompanyService.create(name="  Bright Supports  ", code=" bright ")
    assert company.name == "Bright Supports"
    assert company.code == "bright"
    assert company.status == CompanyStatus.ACTIVE
    assert company.timezone == "Australia/Melbourne"

    with pytest.raises(ValidationError):
        CompanyService.create(name="", code="empty-name")
    with pytest.raises(ValidationError):
        CompanyService.create(name="Bad status", code="bad", status="ARCHIVED")


def test_bootstrap_is_idempotent():
    args = ["--code", "acme", "--name", "Acme Care", "--admin-username", "acme-admin", "--admin-password", "Pass@12345"]
    call_command("bootstrap_company", *args)
    call_command("bootstrap_company", *args)

    company = Company.objects.get(code="acme")
    membership = CompanyMembership.objects.get(company=company)
    assert membership.role == CompanyRole.COMPANY_ADMIN
    assert membership.user.check_password("Pass@12345")
    assert AuditDomain.objects.filter(tenant_id=company.id).exists()


def test_bootstrap_needs_password_for_new_admin():
    with pytest.raises(CommandError):
        call_command("bootstrap_company", "--code", "acme", "--name", "Acme Care", "--admin-username", "newbie")
    assert not Company.objects.filter(code="acme").exists()
