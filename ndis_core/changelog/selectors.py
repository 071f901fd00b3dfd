# ndis_core/changelog/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import QuerySet

from ndis_core.changelog.models import ChangeLogEntry


def list_change_log(
    *,
    tenant_id: UUID,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
    action: str | None = None,
    actor_user_id: int | None = None,
) -> QuerySet[ChangeLogEntry]:
    qs = ChangeLogEntry.objects.filter(tenant_id=tenant_id)

    if entity_type:
        qs = qs.filter(entity_type=entity_type)
    if entity_id:
        qs = qs.filter(entity_id=entity_id)
    if action:
        qs = qs.filter(action=action)
    if actor_user_id is not None:
        qs = qs.filter(actor_user_id=actor_user_id)

    return qs.order_by("-occurred_at")
