# ndis_core/tenants/services.py
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from rest_framework.exceptions import ValidationError

from ndis_core.tenants.models import Company, CompanyStatus

logger = logging.getLogger(__name__)


class CompanyService:
    """
    All Company mutations live here (write-model boundary).
    """

    @staticmethod
    @transaction.atomic
    def create(
        *,
        name: str,
        code: str,
        abn: str = "",
        ndis_registration_number: str = "",
        timezone: str = "Australia/Melbourne",
        metadata: Optional[dict] = None,
        status: str = CompanyStatus.ACTIVE,
    ) -> Company:
        code = (code or "").strip()
        name = (name or "").strip()

        if not code:
            raise ValidationError({"code": "This field is required."})
        if not name:
            raise ValidationError({"name": "This field is required."})

        if status not in CompanyStatus.values:
            raise ValidationError({"status": f"Invalid status. Allowed: {list(CompanyStatus.values)}"})

        company = Company.objects.create(
            name=name,
            code=code,
            abn=(abn or "").strip(),
            ndis_registration_number=(ndis_registration_number or "").strip(),
            timezone=timezone,
            status=status,
            metadata=metadata or {},
        )
        logger.info("Company created id=%s code=%s", company.id, company.code)
        return company
