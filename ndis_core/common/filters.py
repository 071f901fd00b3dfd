# ndis_core/common/filters.py
from __future__ import annotations

from typing import Any, Mapping, Optional, Type

import django_filters
from django.db.models import QuerySet
from rest_framework.exceptions import ValidationError


def apply_filterset(
    filterset_class: Type[django_filters.FilterSet],
    params: Optional[Mapping[str, Any]],
    queryset: QuerySet,
) -> QuerySet:
    """
    Run query params through a FilterSet outside of a view.
    Invalid values (bad UUID, unknown choice) -> 400.
    """
    if not params:
        return queryset
    fs = filterset_class(data=params, queryset=queryset)
    if not fs.is_valid():
        raise ValidationError(fs.errors)
    return fs.qs
