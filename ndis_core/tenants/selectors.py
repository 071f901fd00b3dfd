# ndis_core/tenants/selectors.py
from __future__ import annotations

from typing import Optional

from ndis_core.tenants.models import Company


def get_company_by_code_or_none(*, code: str) -> Optional[Company]:
    return Company.objects.filter(code=code).first()
