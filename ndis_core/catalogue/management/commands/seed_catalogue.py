# ndis_core/catalogue/management/commands/seed_catalogue.py

from django.core.management.base import BaseCommand

from ndis_core.catalogue.services import CatalogueService
from ndis_core.tenants.models import Company


class Command(BaseCommand):
    help = "Ensure the support catalogue and every company's default audit domains exist (idempotent)."

    def handle(self, *args, **options):
        result = CatalogueService.seed_catalogue()

        companies = 0
        for company_id in Company.objects.values_list("id", flat=True):
            CatalogueService.ensure_default_domains(tenant_id=company_id)
            companies += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Catalogue {result.version} ensured. Newly created: "
                f"{result.categories_created} categories, {result.line_items_created} line items. "
                f"Domains ensured for {companies} companies."
            )
        )
