# ndis_core/compliance/models.py
from django.conf import settings
from django.db import models

from ndis_core.common.models import ScopedModel
from ndis_core.sites.models import Participant, WorkSite


class ComplianceScopeType(models.TextChoices):
    SITE = "SITE", "Site"
    PARTICIPANT = "PARTICIPANT", "Participant"


class ComplianceFrequency(models.TextChoices):
    DAILY = "DAILY", "Daily"
    WEEKLY = "WEEKLY", "Weekly"


class ResponseType(models.TextChoices):
    YES_NO_NA = "YES_NO_NA", "Yes / No / N/A"
    NUMBER = "NUMBER", "Number"
    TEXT = "TEXT", "Text"
    PHOTO_REQUIRED = "PHOTO_REQUIRED", "Photo required"


class EvidenceSourceType(models.TextChoices):
    MANUAL = "MANUAL", "Manual"
    EXTERNAL_SIGNAL = "EXTERNAL_SIGNAL", "External signal"


class RunStatus(models.TextChoices):
    OPEN = "OPEN", "Open"
    SUBMITTED = "SUBMITTED", "Submitted"
    LOCKED = "LOCKED", "Locked"


class ActionSeverity(models.TextChoices):
    HIGH = "HIGH", "High"
    MEDIUM = "MEDIUM", "Medium"
    LOW = "LOW", "Low"


class ActionStatus(models.TextChoices):
    OPEN = "OPEN", "Open"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    CLOSED = "CLOSED", "Closed"


class ComplianceTemplate(ScopedModel):
    """
    A periodic checklist for a site or a participant.
    Deactivated instead of deleted.
    """
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    scope_type = models.CharField(max_length=16, choices=ComplianceScopeType.choices)
    frequency = models.CharField(max_length=16, choices=ComplianceFrequency.choices)
    applies_to_site_types = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        db_table = "compliance_template"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["tenant_id", "scope_type", "frequency"]),
        ]

    def __str__(self) -> str:
        return self.name


class ComplianceTemplateItem(ScopedModel):
    template = models.ForeignKey(ComplianceTemplate, on_delete=models.CASCADE, related_name="items")

    title = models.CharField(max_length=255)
    guidance_text = models.TextField(blank=True, default="")
    response_type = models.CharField(max_length=16, choices=ResponseType.choices, default=ResponseType.YES_NO_NA)
    is_critical = models.BooleanField(default=False)
    default_evidence_required = models.BooleanField(default=False)
    evidence_source_type = models.CharField(
        max_length=16, choices=EvidenceSourceType.choices, default=EvidenceSourceType.MANUAL
    )
    notes_required_on_fail = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)

    class Meta:
        db_table = "compliance_template_item"
        ordering = ["sort_order", "created_at"]

    def __str__(self) -> str:
        return self.title


class ComplianceRun(ScopedModel):
    """
    One checklist execution for one site / participant and one period.
    OPEN -> SUBMITTED (-> LOCKED).

    period_date is the period start truncated to the local date; together with
    template + scope it is the duplicate-run key.
    """
    template = models.ForeignKey(ComplianceTemplate, on_delete=models.PROTECT, related_name="runs")
    scope_type = models.CharField(max_length=16, choices=ComplianceScopeType.choices)
    frequency = models.CharField(max_length=16, choices=ComplianceFrequency.choices)

    site = models.ForeignKey(WorkSite, on_delete=models.PROTECT, null=True, blank=True, related_name="compliance_runs")
    participant = models.ForeignKey(
        Participant, on_delete=models.PROTECT, null=True, blank=True, related_name="compliance_runs"
    )
    scope_entity_id = models.UUIDField()

    period_start = models.DateTimeField()
    period_end = models.DateTimeField()
    period_date = models.DateField()

    status = models.CharField(max_length=16, choices=RunStatus.choices, default=RunStatus.OPEN, db_index=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    submitted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "compliance_run"
        ordering = ["-period_start", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "template", "scope_type", "scope_entity_id", "period_date"],
                name="uq_compliance_run_period",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "status"]),
            models.Index(fields=["tenant_id", "period_start"]),
        ]


class ComplianceResponse(ScopedModel):
    run = models.ForeignKey(ComplianceRun, on_delete=models.CASCADE, related_name="responses")
    template_item = models.ForeignKey(ComplianceTemplateItem, on_delete=models.PROTECT, related_name="responses")

    response_value = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    attachment_path = models.CharField(max_length=1024, blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        db_table = "compliance_response"
        constraints = [
            models.UniqueConstraint(fields=["run", "template_item"], name="uq_compliance_response_run_item"),
        ]


class ComplianceAction(ScopedModel):
    """
    Corrective action raised when a run is submitted with failing answers.
    OPEN -> IN_PROGRESS -> CLOSED; closing needs notes.
    """
    run = models.ForeignKey(ComplianceRun, on_delete=models.PROTECT, related_name="actions")
    template_item = models.ForeignKey(
        ComplianceTemplateItem, on_delete=models.SET_NULL, null=True, blank=True, related_name="actions"
    )
    site = models.ForeignKey(WorkSite, on_delete=models.PROTECT, null=True, blank=True, related_name="compliance_actions")
    participant = models.ForeignKey(
        Participant, on_delete=models.PROTECT, null=True, blank=True, related_name="compliance_actions"
    )

    severity = models.CharField(max_length=8, choices=ActionSeverity.choices)
    status = models.CharField(max_length=16, choices=ActionStatus.choices, default=ActionStatus.OPEN, db_index=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    assigned_to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="compliance_actions"
    )
    due_at = models.DateTimeField(null=True, blank=True)

    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    closure_notes = models.TextField(blank=True, default="")
    closure_attachment_path = models.CharField(max_length=1024, blank=True, default="")

    class Meta:
        db_table = "compliance_action"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["tenant_id", "status", "severity"]),
        ]
