# ndis_core/compliance/filters.py
import django_filters

from ndis_core.compliance.models import (
    ActionSeverity,
    ActionStatus,
    ComplianceAction,
    ComplianceFrequency,
    ComplianceRun,
    ComplianceScopeType,
    ComplianceTemplate,
    RunStatus,
)


class ComplianceTemplateFilter(django_filters.FilterSet):
    scope_type = django_filters.ChoiceFilter(choices=ComplianceScopeType.choices)
    frequency = django_filters.ChoiceFilter(choices=ComplianceFrequency.choices)
    is_active = django_filters.BooleanFilter()

    class Meta:
        model = ComplianceTemplate
        fields = ["scope_type", "frequency", "is_active"]


class ComplianceRunFilter(django_filters.FilterSet):
    site = django_filters.UUIDFilter(field_name="site_id")
    participant = django_filters.UUIDFilter(field_name="participant_id")
    template = django_filters.UUIDFilter(field_name="template_id")
    status = django_filters.ChoiceFilter(choices=RunStatus.choices)
    frequency = django_filters.ChoiceFilter(choices=ComplianceFrequency.choices)

    class Meta:
        model = ComplianceRun
        fields = ["site", "participant", "template", "status", "frequency"]


class ComplianceActionFilter(django_filters.FilterSet):
    site = django_filters.UUIDFilter(field_name="site_id")
    participant = django_filters.UUIDFilter(field_name="participant_id")
    run = django_filters.UUIDFilter(field_name="run_id")
    status = django_filters.ChoiceFilter(choices=ActionStatus.choices)
    severity = django_filters.ChoiceFilter(choices=ActionSeverity.choices)

    class Meta:
        model = ComplianceAction
        fields = ["site", "participant", "run", "status", "severity"]
