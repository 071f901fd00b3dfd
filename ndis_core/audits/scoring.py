# ndis_core/audits/scoring.py
from __future__ import annotations

import math
from typing import Iterable, Optional

from ndis_core.audits.models import IndicatorRating

SCORE_VERSION = "v1"

RATING_POINTS = {
    IndicatorRating.CONFORMANCE: 2,
    IndicatorRating.OBSERVATION: 1,
    IndicatorRating.MINOR_NC: 0,
    IndicatorRating.MAJOR_NC: -2,
}

MAX_POINTS_PER_INDICATOR = 2


def score_for_rating(rating: str) -> int:
    return RATING_POINTS.get(rating, 0)


def score_percent(points: Iterable[int], indicator_count: int) -> Optional[int]:
    """
    clamp(total / (indicators * 2) * 100, 0, 100) rounded half-up.
    None when there is nothing to score.
    """
    max_points = indicator_count * MAX_POINTS_PER_INDICATOR
    if max_points <= 0:
        return None
    pct = max(0.0, min(100.0, sum(points) / max_points * 100))
    return int(math.floor(pct + 0.5))
