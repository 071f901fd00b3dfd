# ndis_core/audits/models.py
from django.conf import settings
from django.db import models

from ndis_core.catalogue.models import AuditDomain, SupportLineItem
from ndis_core.common.models import ScopedModel


class AuditType(models.TextChoices):
    INTERNAL = "INTERNAL", "Internal"
    EXTERNAL = "EXTERNAL", "External"


class AuditStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    IN_REVIEW = "IN_REVIEW", "In review"
    CLOSED = "CLOSED", "Closed"


class ServiceContext(models.TextChoices):
    SIL = "SIL", "Supported Independent Living (SIL)"
    COMMUNITY_ACCESS = "COMMUNITY_ACCESS", "Community Access"
    IN_HOME = "IN_HOME", "In-Home Support"
    CENTRE_BASED = "CENTRE_BASED", "Centre Based"
    OTHER = "OTHER", "Other"


class RiskLevel(models.TextChoices):
    LOW = "LOW", "Low"
    MEDIUM = "MEDIUM", "Medium"
    HIGH = "HIGH", "High"
    CRITICAL = "CRITICAL", "Critical"


class IndicatorRating(models.TextChoices):
    CONFORMANCE = "CONFORMANCE", "Conformance"
    OBSERVATION = "OBSERVATION", "Observation"
    MINOR_NC = "MINOR_NC", "Minor non-conformance"
    MAJOR_NC = "MAJOR_NC", "Major non-conformance"


NON_CONFORMING_RATINGS = frozenset({IndicatorRating.MINOR_NC, IndicatorRating.MAJOR_NC})


class Audit(ScopedModel):
    """
    Audit lifecycle: DRAFT -> IN_PROGRESS -> IN_REVIEW -> CLOSED.
    Audits are never hard-deleted.
    """
    audit_type = models.CharField(max_length=16, choices=AuditType.choices)
    status = models.CharField(max_length=16, choices=AuditStatus.choices, default=AuditStatus.DRAFT, db_index=True)

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    service_context = models.CharField(max_length=32, choices=ServiceContext.choices, default=ServiceContext.OTHER)
    service_context_label = models.CharField(max_length=255)

    scope_time_from = models.DateTimeField(null=True, blank=True)
    scope_time_to = models.DateTimeField(null=True, blank=True)
    scope_locked = models.BooleanField(default=False)

    external_auditor_name = models.CharField(max_length=255, blank=True, default="")
    external_auditor_org = models.CharField(max_length=255, blank=True, default="")
    external_auditor_email = models.EmailField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    close_reason = models.TextField(blank=True, default="")
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        db_table = "audits_audit"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["tenant_id", "status"]),
            models.Index(fields=["tenant_id", "audit_type"]),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"


class AuditScopeLineItem(models.Model):
    """
    Audit <-> support line item. Replaced wholesale on scope update.
    """
    audit = models.ForeignKey(Audit, on_delete=models.CASCADE, related_name="scope_line_items")
    line_item = models.ForeignKey(SupportLineItem, on_delete=models.PROTECT, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "audits_scope_line_item"
        constraints = [
            models.UniqueConstraint(fields=["audit", "line_item"], name="uq_audit_scope_line_item"),
        ]


class AuditScopeDomain(models.Model):
    audit = models.ForeignKey(Audit, on_delete=models.CASCADE, related_name="scope_domains")
    domain = models.ForeignKey(AuditDomain, on_delete=models.PROTECT, related_name="+")
    is_included = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "audits_scope_domain"
        constraints = [
            models.UniqueConstraint(fields=["audit", "domain"], name="uq_audit_scope_domain"),
        ]


class AuditTemplate(ScopedModel):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    version = models.CharField(max_length=32, blank=True, default="1")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "audits_template"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class AuditTemplateIndicator(ScopedModel):
    template = models.ForeignKey(AuditTemplate, on_delete=models.CASCADE, related_name="indicators")

    indicator_text = models.TextField()
    guidance_text = models.TextField(blank=True, default="")
    evidence_requirements = models.TextField(blank=True, default="")
    risk_level = models.CharField(max_length=16, choices=RiskLevel.choices, default=RiskLevel.MEDIUM)
    is_critical_control = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)

    class Meta:
        db_table = "audits_template_indicator"
        ordering = ["sort_order", "created_at"]


class AuditRun(models.Model):
    """
    The template an audit is run against (1:1 with the audit).
    """
    audit = models.OneToOneField(Audit, on_delete=models.CASCADE, related_name="run")
    template = models.ForeignKey(AuditTemplate, on_delete=models.PROTECT, related_name="runs")
    started_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "audits_run"


class AuditIndicatorResponse(ScopedModel):
    """
    One rating per (audit, indicator); latest write wins.
    """
    audit = models.ForeignKey(Audit, on_delete=models.CASCADE, related_name="responses")
    indicator = models.ForeignKey(AuditTemplateIndicator, on_delete=models.PROTECT, related_name="responses")

    rating = models.CharField(max_length=16, choices=IndicatorRating.choices)
    comment = models.TextField(blank=True, default="")
    score_points = models.IntegerField(default=0)
    score_version = models.CharField(max_length=8, default="v1")
    added_in_review = models.BooleanField(default=False)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        db_table = "audits_indicator_response"
        constraints = [
            models.UniqueConstraint(fields=["audit", "indicator"], name="uq_audit_indicator_response"),
        ]
