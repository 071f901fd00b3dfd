# ndis_core/changelog/models.py
import uuid

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class ActorType(models.TextChoices):
    COMPANY_USER = "company_user", "Company user"
    SYSTEM = "system", "System"


class ChangeLogEntry(models.Model):
    """
    Immutable change record with before/after snapshots.
    Every workflow mutation writes one of these.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant_id = models.UUIDField(db_index=True)

    actor_type = models.CharField(max_length=32, choices=ActorType.choices, default=ActorType.COMPANY_USER)
    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="change_log_entries",
        null=True,
        blank=True,
    )

    action = models.CharField(max_length=128, db_index=True)  # e.g. "AUDIT_STARTED"
    entity_type = models.CharField(max_length=128, db_index=True)  # e.g. "audit"
    entity_id = models.UUIDField(db_index=True)

    before_json = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    after_json = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)

    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "changelog_entry"
        indexes = [
            models.Index(fields=["tenant_id", "occurred_at"]),
            models.Index(fields=["entity_type", "entity_id"]),
            models.Index(fields=["tenant_id", "action"]),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("ChangeLogEntry is immutable.")
        return super().save(*args, **kwargs)
