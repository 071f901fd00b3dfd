# ndis_core/catalogue/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from django.db import IntegrityError, transaction
from rest_framework.exceptions import ValidationError

from ndis_core.catalogue import seed
from ndis_core.catalogue.models import AuditDomain, CompanyServiceSelection, SupportCategory, SupportLineItem
from ndis_core.changelog.services import ChangeLogService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedResult:
    version: str
    categories_created: int
    line_items_created: int


class CatalogueService:
    """
    Catalogue bootstrap + per-company catalogue configuration.
    Every bootstrap step is a no-op for rows that already exist (matched by natural key).
    """

    @staticmethod
    @transaction.atomic
    def seed_catalogue() -> SeedResult:
        categories_created = 0
        items_created = 0

        for cat in seed.CATEGORIES:
            category, created = SupportCategory.objects.get_or_create(
                category_key=cat["category_key"],
                defaults={"category_label": cat["category_label"], "sort_order": cat["sort_order"]},
            )
            categories_created += 1 if created else 0

            for sort_order, (code, label, budget_group) in enumerate(seed.LINE_ITEMS.get(cat["category_key"], []), start=1):
                _, item_created = SupportLineItem.objects.get_or_create(
                    category=category,
                    item_code=code,
                    defaults={
                        "item_label": label,
                        "budget_group": budget_group,
                        "sort_order": sort_order,
                        "is_active": True,
                    },
                )
                items_created += 1 if item_created else 0

        logger.info(
            "Catalogue %s ensured: %d categories, %d line items created",
            seed.CATALOGUE_VERSION,
            categories_created,
            items_created,
        )
        return SeedResult(
            version=seed.CATALOGUE_VERSION,
            categories_created=categories_created,
            line_items_created=items_created,
        )

    @staticmethod
    def ensure_default_domains(*, tenant_id: UUID) -> list[AuditDomain]:
        """
        Idempotently provision the default audit domains for a company.
        Returns all of the company's domains.
        """
        for defaults in seed.DEFAULT_AUDIT_DOMAINS:
            if AuditDomain.objects.filter(tenant_id=tenant_id, code=defaults["code"]).exists():
                continue
            try:
                with transaction.atomic(savepoint=True):
                    AuditDomain.objects.create(tenant_id=tenant_id, **defaults)
            except IntegrityError:
                # created concurrently; the unique key makes this a no-op
                logger.warning("Audit domain %s already provisioned for tenant=%s", defaults["code"], tenant_id)

        return list(AuditDomain.objects.filter(tenant_id=tenant_id).order_by("name"))

    @staticmethod
    @transaction.atomic
    def set_service_selections(
        *,
        tenant_id: UUID,
        line_item_ids: Iterable[UUID],
        actor_user_id: int | None,
    ) -> list[UUID]:
        """
        Full replace of the company's delivered line items.
        """
        wanted = list(dict.fromkeys(line_item_ids))
        valid = set(SupportLineItem.objects.filter(id__in=wanted, is_active=True).values_list("id", flat=True))
        invalid = [str(i) for i in wanted if i not in valid]
        if invalid:
            raise ValidationError({"line_item_ids": f"Unknown or inactive line items: {invalid}"})

        before = sorted(
            str(i) for i in CompanyServiceSelection.objects.filter(tenant_id=tenant_id).values_list("line_item_id", flat=True)
        )

        CompanyServiceSelection.objects.filter(tenant_id=tenant_id).delete()
        CompanyServiceSelection.objects.bulk_create(
            [CompanyServiceSelection(tenant_id=tenant_id, line_item_id=i) for i in wanted]
        )

        ChangeLogService.log(
            action="SERVICE_SELECTIONS_UPDATED",
            entity_type="company",
            entity_id=tenant_id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before={"line_item_ids": before},
            after={"line_item_ids": sorted(str(i) for i in wanted)},
        )
        return wanted
