# ndis_core/iam/models.py
import uuid
from django.conf import settings
from django.db import models
from ndis_core.tenants.models import Company


class CompanyRole(models.TextChoices):
    COMPANY_ADMIN = "CompanyAdmin", "Company Admin"
    AUDITOR = "Auditor", "Auditor"
    REVIEWER = "Reviewer", "Reviewer"
    STAFF_READ_ONLY = "StaffReadOnly", "Staff (read only)"


class CompanyMembership(models.Model):
    """
    Assigns a user to a company with exactly one role.
    This is the RBAC enforcement point for company-level access.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name="memberships")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="company_memberships")

    role = models.CharField(max_length=32, choices=CompanyRole.choices, default=CompanyRole.STAFF_READ_ONLY)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "iam_company_membership"
        constraints = [
            models.UniqueConstraint(fields=["company", "user"], name="uq_company_user_membership"),
        ]
        indexes = [
            models.Index(fields=["company", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}@{self.company_id} ({self.role})"
