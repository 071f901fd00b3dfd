# ndis_core/findings/filters.py
import django_filters

from ndis_core.findings.models import EvidenceRequest, EvidenceStatus, Finding, FindingSeverity, FindingStatus


class FindingFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=FindingStatus.choices)
    severity = django_filters.ChoiceFilter(choices=FindingSeverity.choices)
    audit = django_filters.UUIDFilter(field_name="audit_id")

    class Meta:
        model = Finding
        fields = ["status", "severity", "audit"]


class EvidenceRequestFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=EvidenceStatus.choices)
    audit = django_filters.UUIDFilter(field_name="audit_id")
    finding = django_filters.UUIDFilter(field_name="finding_id")

    class Meta:
        model = EvidenceRequest
        fields = ["status", "audit", "finding"]
