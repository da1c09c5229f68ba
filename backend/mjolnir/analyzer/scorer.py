"""
Scorer: contributions to metrics and an overall score.

Every category starts at 100 and loses ``PENALTIES[severity] * weight`` per
contribution landing in it. Each category is floored at 0 and rounded half
up to an integer; the overall score is the unweighted mean of the four
categories, also rounded half up. Adding a contribution can only lower (or
keep) a metric.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from mjolnir.analyzer.models import Category, Contribution, Metrics, Severity

PENALTIES: dict[Severity, int] = {
    Severity.HIGH: 25,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
}

START = Decimal(100)


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def score(contributions: list[Contribution]) -> tuple[Metrics, int]:
    totals = {category: START for category in Category}
    for contribution in contributions:
        # NaN and negative weights count as zero
        raw = 0.0 if math.isnan(contribution.weight) else contribution.weight
        weight = Decimal(str(max(raw, 0.0)))
        totals[contribution.category] -= PENALTIES[contribution.severity] * weight

    values = {category.value: _round_half_up(max(total, Decimal(0))) for category, total in totals.items()}
    metrics = Metrics(**values)
    overall = _round_half_up(Decimal(sum(values.values())) / len(values))
    return metrics, overall
