# ndis_core/findings/models.py
from django.conf import settings
from django.db import models
from django.db.models import Q

from ndis_core.audits.models import Audit, AuditTemplateIndicator
from ndis_core.common.models import ScopedModel


class FindingSeverity(models.TextChoices):
    MINOR_NC = "MINOR_NC", "Minor non-conformance"
    MAJOR_NC = "MAJOR_NC", "Major non-conformance"


class FindingStatus(models.TextChoices):
    OPEN = "OPEN", "Open"
    UNDER_REVIEW = "UNDER_REVIEW", "Under review"
    CLOSED = "CLOSED", "Closed"


class Finding(ScopedModel):
    """
    A non-conformance raised from an indicator response.
    Exactly one per (audit, indicator); the DB constraint is the idempotency key.
    """
    audit = models.ForeignKey(Audit, on_delete=models.PROTECT, related_name="findings")
    indicator = models.ForeignKey(AuditTemplateIndicator, on_delete=models.PROTECT, related_name="findings")

    severity = models.CharField(max_length=16, choices=FindingSeverity.choices)
    finding_text = models.TextField()
    status = models.CharField(max_length=16, choices=FindingStatus.choices, default=FindingStatus.OPEN, db_index=True)

    owner_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="owned_findings"
    )
    due_date = models.DateField(null=True, blank=True)

    closure_note = models.TextField(blank=True, default="")
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        db_table = "findings_finding"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["audit", "indicator"], name="uq_finding_audit_indicator"),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "status"]),
            models.Index(fields=["tenant_id", "severity"]),
        ]


class EvidenceType(models.TextChoices):
    # Client identity & authority
    CLIENT_PROFILE = "CLIENT_PROFILE", "Client Profile / Intake"
    NDIS_PLAN = "NDIS_PLAN", "NDIS Plan"
    SERVICE_AGREEMENT = "SERVICE_AGREEMENT", "Service Agreement"
    CONSENT_FORM = "CONSENT_FORM", "Consent Form"
    GUARDIAN_DOCUMENTATION = "GUARDIAN_DOCUMENTATION", "Guardian / Nominee Documentation"
    # Assessment & planning
    CARE_PLAN = "CARE_PLAN", "Care / Support Plan"
    BSP = "BSP", "Behaviour Support Plan (BSP)"
    MMP = "MMP", "Mealtime Management Plan (MMP)"
    HEALTH_PLAN = "HEALTH_PLAN", "Health Management Plan"
    COMMUNICATION_PLAN = "COMMUNICATION_PLAN", "Communication Plan"
    RISK_ASSESSMENT = "RISK_ASSESSMENT", "Risk Assessment"
    EMERGENCY_PLAN = "EMERGENCY_PLAN", "Emergency Plan"
    # Delivery of supports
    ROSTER = "ROSTER", "Roster / Shift Allocation"
    SHIFT_NOTES = "SHIFT_NOTES", "Shift Notes / Case Notes"
    DAILY_LOG = "DAILY_LOG", "Daily Support Log"
    PROGRESS_NOTES = "PROGRESS_NOTES", "Progress Notes"
    ACTIVITY_RECORD = "ACTIVITY_RECORD", "Activity Record"
    # Staff & personnel
    QUALIFICATION = "QUALIFICATION", "Qualification / Credential"
    WWCC = "WWCC", "WWCC / Police Check / Screening"
    TRAINING_RECORD = "TRAINING_RECORD", "Training Record"
    SUPERVISION_RECORD = "SUPERVISION_RECORD", "Supervision Record"
    # Medication & health
    MEDICATION_PLAN = "MEDICATION_PLAN", "Medication Management Plan"
    MAR = "MAR", "Medication Administration Record"
    PRN_LOG = "PRN_LOG", "PRN Protocol / Log"
    # Incidents & complaints
    INCIDENT_REPORT = "INCIDENT_REPORT", "Incident Report"
    COMPLAINT_RECORD = "COMPLAINT_RECORD", "Complaint Record"
    RP_RECORD = "RP_RECORD", "Restrictive Practice Record"
    # Funding & claims
    SERVICE_BOOKING = "SERVICE_BOOKING", "Service Booking / Funding"
    INVOICE_CLAIM = "INVOICE_CLAIM", "Invoice / Claim Record"
    # Governance
    POLICY = "POLICY", "Policy Document"
    PROCEDURE = "PROCEDURE", "Procedure"
    REVIEW_RECORD = "REVIEW_RECORD", "Review / Monitoring Record"
    OTHER = "OTHER", "Other"


class EvidenceStatus(models.TextChoices):
    REQUESTED = "REQUESTED", "Requested"
    SUBMITTED = "SUBMITTED", "Submitted"
    UNDER_REVIEW = "UNDER_REVIEW", "Under review"
    ACCEPTED = "ACCEPTED", "Accepted"
    REJECTED = "REJECTED", "Rejected"


class EvidenceRequest(ScopedModel):
    """
    REQUESTED -> SUBMITTED -> (UNDER_REVIEW) -> ACCEPTED | REJECTED
    REJECTED -> SUBMITTED on resubmission.

    Finding-linked, audit-linked (optionally to one indicator) or standalone.
    """
    finding = models.ForeignKey(Finding, on_delete=models.PROTECT, null=True, blank=True, related_name="evidence_requests")
    audit = models.ForeignKey(Audit, on_delete=models.PROTECT, null=True, blank=True, related_name="evidence_requests")
    template_indicator = models.ForeignKey(
        AuditTemplateIndicator, on_delete=models.PROTECT, null=True, blank=True, related_name="evidence_requests"
    )

    evidence_type = models.CharField(max_length=32, choices=EvidenceType.choices)
    request_note = models.TextField()
    due_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=EvidenceStatus.choices, default=EvidenceStatus.REQUESTED, db_index=True)

    # 32 random bytes, hex
    public_token = models.CharField(max_length=64, unique=True)

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    submitted_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    review_note = models.TextField(blank=True, default="")

    class Meta:
        db_table = "findings_evidence_request"
        ordering = ["-created_at"]
        constraints = [
            # at most one non-accepted request per finding
            models.UniqueConstraint(
                fields=["finding"],
                condition=Q(finding__isnull=False) & ~Q(status="ACCEPTED"),
                name="uq_active_evidence_request_per_finding",
            ),
        ]


class StorageKind(models.TextChoices):
    UPLOAD = "UPLOAD", "Upload"
    LINK = "LINK", "Link"


class EvidenceItem(ScopedModel):
    """
    Append-only.
    """
    evidence_request = models.ForeignKey(EvidenceRequest, on_delete=models.PROTECT, related_name="items")

    storage_kind = models.CharField(max_length=8, choices=StorageKind.choices)
    file_name = models.CharField(max_length=255)
    file_path = models.CharField(max_length=1024, blank=True, default="")
    mime_type = models.CharField(max_length=128, blank=True, default="")
    file_size_bytes = models.BigIntegerField(null=True, blank=True)
    external_url = models.URLField(max_length=2048, blank=True, default="")
    note = models.TextField(blank=True, default="")

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        db_table = "findings_evidence_item"
        ordering = ["created_at"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Evidence items are immutable.")
        return super().save(*args, **kwargs)
