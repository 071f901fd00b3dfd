# ndis_core/changelog/services.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from ndis_core.changelog.models import ActorType, ChangeLogEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeRecord:
    action: str
    entity_type: str
    entity_id: UUID
    tenant_id: UUID
    actor_user_id: int | None
    before: Optional[Dict[str, Any]]
    after: Optional[Dict[str, Any]]


def snapshot(instance, fields: Iterable[str]) -> Dict[str, Any]:
    """
    JSON-safe dict of the named model fields (FKs by *_id).
    """
    data: Dict[str, Any] = {}
    for name in fields:
        data[name] = getattr(instance, name, None)
    # round-trip so UUID/datetime/Decimal become plain JSON values
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


class ChangeLogService:
    """
    Central change-log writer. Entries are never updated.
    """

    @staticmethod
    @transaction.atomic
    def log(
        *,
        action: str,
        entity_type: str,
        entity_id: UUID,
        tenant_id: UUID,
        actor_user_id: int | None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
    ) -> ChangeRecord:
        ChangeLogEntry.objects.create(
            tenant_id=tenant_id,
            actor_type=ActorType.COMPANY_USER if actor_user_id else ActorType.SYSTEM,
            actor_user_id=actor_user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            before_json=before,
            after_json=after,
        )
        logger.debug("change-log %s %s=%s tenant=%s", action, entity_type, entity_id, tenant_id)

        return ChangeRecord(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            tenant_id=tenant_id,
            actor_user_id=actor_user_id,
            before=before,
            after=after,
        )
