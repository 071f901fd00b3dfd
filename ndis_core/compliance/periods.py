# ndis_core/compliance/periods.py
from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from django.utils import timezone
from rest_framework.exceptions import ValidationError

from ndis_core.compliance.models import ComplianceFrequency


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """
    Start and end of a calendar day in the project's local timezone.
    """
    tz = timezone.get_current_timezone()
    return (
        timezone.make_aware(datetime.combine(day, time.min), tz),
        timezone.make_aware(datetime.combine(day, time.max), tz),
    )


def period_for(
    *,
    frequency: str,
    day: Optional[date] = None,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
) -> tuple[datetime, datetime]:
    """
    DAILY: the supplied (or current local) day.
    WEEKLY: explicit start/end dates, both required, end >= start.
    """
    if frequency == ComplianceFrequency.DAILY:
        return day_bounds(day or timezone.localdate())

    if not period_start or not period_end:
        raise ValidationError({"period_start": "period_start and period_end are required for weekly templates."})
    if period_end < period_start:
        raise ValidationError({"period_end": "Must be on or after period_start."})
    return day_bounds(period_start)[0], day_bounds(period_end)[1]
