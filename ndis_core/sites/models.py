# ndis_core/sites/models.py
from django.conf import settings
from django.db import models

from ndis_core.common.models import ScopedModel


class RecordStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class WorkSite(ScopedModel):
    """
    A place supports are delivered (SIL house, day centre, office).
    Sites are deactivated, never deleted: compliance runs point at them.
    """
    name = models.CharField(max_length=255)
    address_line1 = models.CharField(max_length=255, blank=True, default="")
    suburb = models.CharField(max_length=128, blank=True, default="")
    state = models.CharField(max_length=16, blank=True, default="")
    postcode = models.CharField(max_length=16, blank=True, default="")
    site_type = models.CharField(max_length=64, blank=True, default="")
    status = models.CharField(max_length=16, choices=RecordStatus.choices, default=RecordStatus.ACTIVE, db_index=True)

    class Meta:
        db_table = "sites_work_site"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["tenant_id", "status"]),
        ]

    def __str__(self) -> str:
        return self.name


class Participant(ScopedModel):
    first_name = models.CharField(max_length=128)
    last_name = models.CharField(max_length=128)
    display_name = models.CharField(max_length=255, blank=True, default="")
    ndis_number = models.CharField(max_length=32, blank=True, default="")
    date_of_birth = models.DateField(null=True, blank=True)

    primary_site = models.ForeignKey(
        WorkSite,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="primary_participants",
    )
    status = models.CharField(max_length=16, choices=RecordStatus.choices, default=RecordStatus.ACTIVE, db_index=True)

    class Meta:
        db_table = "sites_participant"
        ordering = ["last_name", "first_name"]
        indexes = [
            models.Index(fields=["tenant_id", "status"]),
        ]

    @property
    def full_name(self) -> str:
        return self.display_name or f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return self.full_name


class StaffSiteAssignment(ScopedModel):
    """
    Gives a StaffReadOnly user access to a site's runs and actions.
    """
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="site_assignments")
    site = models.ForeignKey(WorkSite, on_delete=models.CASCADE, related_name="staff_assignments")

    class Meta:
        db_table = "sites_staff_site_assignment"
        constraints = [
            models.UniqueConstraint(fields=["site", "user"], name="uq_staff_site_assignment"),
        ]


class StaffParticipantAssignment(ScopedModel):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="participant_assignments")
    participant = models.ForeignKey(Participant, on_delete=models.CASCADE, related_name="staff_assignments")

    class Meta:
        db_table = "sites_staff_participant_assignment"
        constraints = [
            models.UniqueConstraint(fields=["participant", "user"], name="uq_staff_participant_assignment"),
        ]


class ParticipantSiteAssignment(ScopedModel):
    """
    Where a participant lives or attends, over a period of time.
    A participant can hold several placements; is_primary marks the main one.
    """
    participant = models.ForeignKey(Participant, on_delete=models.CASCADE, related_name="site_placements")
    site = models.ForeignKey(WorkSite, on_delete=models.CASCADE, related_name="participant_placements")
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    is_primary = models.BooleanField(default=False)

    class Meta:
        db_table = "sites_participant_site_assignment"
        ordering = ["-start_date"]
        indexes = [
            models.Index(fields=["tenant_id", "participant"]),
            models.Index(fields=["tenant_id", "site"]),
        ]