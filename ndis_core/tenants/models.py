# ndis_core/tenants/models.py
import uuid
from django.db import models


class CompanyStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"
    SUSPENDED = "SUSPENDED", "Suspended"


class Company(models.Model):
    """
    An NDIS provider organisation.
    Root of all scoping in the system: every scoped row's tenant_id is a Company id.
    NOT a ScopedModel (it *is* the tenant).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)  # legal name
    code = models.SlugField(max_length=64, unique=True)  # stable identifier (subdomain-friendly)

    abn = models.CharField(max_length=32, blank=True, default="")
    ndis_registration_number = models.CharField(max_length=64, blank=True, default="")
    timezone = models.CharField(max_length=64, default="Australia/Melbourne")

    status = models.CharField(
        max_length=16,
        choices=CompanyStatus.choices,
        default=CompanyStatus.ACTIVE,
        db_index=True,
    )

    # onboarding notes, feature flags, etc.
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "tenants_company"
        verbose_name_plural = "companies"
        indexes = [
            models.Index(fields=["status"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"
