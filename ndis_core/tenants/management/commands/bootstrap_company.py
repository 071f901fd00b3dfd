# ndis_core/tenants/management/commands/bootstrap_company.py

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from ndis_core.catalogue.services import CatalogueService
from ndis_core.iam.models import CompanyMembership, CompanyRole
from ndis_core.tenants.selectors import get_company_by_code_or_none
from ndis_core.tenants.services import CompanyService


class Command(BaseCommand):
    help = "Create a company (if missing), its default audit domains and a CompanyAdmin membership (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--code", required=True)
        parser.add_argument("--name", required=True)
        parser.add_argument("--admin-username", required=True)
        parser.add_argument("--admin-password", default=None)
        parser.add_argument("--abn", default="")

    @transaction.atomic
    def handle(self, *args, **options):
        company = get_company_by_code_or_none(code=options["code"])
        created = company is None
        if created:
            company = CompanyService.create(name=options["name"], code=options["code"], abn=options["abn"])

        User = get_user_model()
        user, user_created = User.objects.get_or_create(username=options["admin_username"])
        if user_created:
            if not options["admin_password"]:
                raise CommandError("--admin-password is required when the admin user does not exist yet.")
            user.set_password(options["admin_password"])
            user.save(update_fields=["password"])

        CompanyMembership.objects.update_or_create(
            company=company,
            user=user,
            defaults={"role": CompanyRole.COMPANY_ADMIN, "is_active": True},
        )
        domains = CatalogueService.ensure_default_domains(tenant_id=company.id)

        self.stdout.write(
            self.style.SUCCESS(
                f"Company {company.code} {'created' if created else 'exists'} "
                f"(id={company.id}); admin={user.username}; {len(domains)} audit domains."
            )
        )
