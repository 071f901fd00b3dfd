import django_filters

from ndis_core.reports.models import ReportStatus, WeeklyComplianceReport


class WeeklyReportFilter(django_filters.FilterSet):
    participant = django_filters.UUIDFilter(field_name="participant_id")
    period_start = django_filters.DateFilter(field_name="period_start", lookup_expr="gte")
    period_end = django_filters.DateFilter(field_name="period_end", lookup_expr="lte")
    report_status = django_filters.ChoiceFilter(choices=ReportStatus.choices)

    class Meta:
        model = WeeklyComplianceReport
        fields = ["participant", "period_start", "period_end", "report_status"]
