# ndis_core/reports/models.py
from django.conf import settings
from django.db import models

from ndis_core.common.models import ScopedModel
from ndis_core.sites.models import Participant

FEATURE_WEEKLY_COMPLIANCE_REPORT = "WEEKLY_COMPLIANCE_REPORT"


class ReportStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    FINAL = "FINAL", "Final"


class GenerationSource(models.TextChoices):
    AI = "AI", "AI"


class WeeklyComplianceReport(ScopedModel):
    """
    Narrative summary of one participant's compliance runs for a period.
    Generated as DRAFT; staff edit the text and mark it FINAL.
    """
    participant = models.ForeignKey(Participant, on_delete=models.PROTECT, related_name="weekly_reports")
    period_start = models.DateField()
    period_end = models.DateField()

    generated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    generation_source = models.CharField(max_length=16, choices=GenerationSource.choices, default=GenerationSource.AI)

    report_text = models.TextField(blank=True, default="")
    report_status = models.CharField(max_length=8, choices=ReportStatus.choices, default=ReportStatus.DRAFT)
    metrics = models.JSONField(default=dict, blank=True)

    input_hash = models.CharField(max_length=64)
    model_name = models.CharField(max_length=128, blank=True, default="")
    prompt_version = models.CharField(max_length=32)

    class Meta:
        db_table = "reports_weekly_compliance_report"
        ordering = ["-period_start", "-created_at"]
        indexes = [
            models.Index(fields=["tenant_id", "participant", "period_start"]),
        ]


class AiGenerationLog(ScopedModel):
    """
    One row per generation attempt, successful or not.
    """
    feature_key = models.CharField(max_length=64, default=FEATURE_WEEKLY_COMPLIANCE_REPORT, db_index=True)
    participant = models.ForeignKey(
        Participant, on_delete=models.SET_NULL, null=True, blank=True, related_name="ai_generation_logs"
    )
    period_start = models.DateField(null=True, blank=True)
    period_end = models.DateField(null=True, blank=True)

    input_hash = models.CharField(max_length=64)
    model_name = models.CharField(max_length=128, blank=True, default="")
    prompt_version = models.CharField(max_length=32)

    success = models.BooleanField(default=False)
    error_message = models.TextField(blank=True, default="")

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")

    class Meta:
        db_table = "reports_ai_generation_log"
        ordering = ["-created_at"]
