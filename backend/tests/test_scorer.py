"""Tests for metric and overall score computation."""

from mjolnir.analyzer.models import Category, Contribution, Metrics, Severity
from mjolnir.analyzer.scorer import PENALTIES, score


def contribution(category, severity, weight=1.0):
    return Contribution("rule", category, severity, weight)


class TestScore:
    def test_no_contributions_is_perfect(self):
        """Given nothing to penalise, every metric and the score are 100."""
        metrics, overall = score([])

        assert metrics == Metrics()
        assert overall == 100

    def test_penalties_per_severity(self):
        """Given one contribution per severity, the table values are subtracted."""
        metrics, _ = score([
            contribution(Category.SECURITY, Severity.HIGH),
            contribution(Category.PERFORMANCE, Severity.MEDIUM),
            contribution(Category.CODE_QUALITY, Severity.LOW),
        ])

        assert metrics.security == 100 - PENALTIES[Severity.HIGH]
        assert metrics.performance == 100 - PENALTIES[Severity.MEDIUM]
        assert metrics.code_quality == 100 - PENALTIES[Severity.LOW]
        assert metrics.gas_efficiency == 100

    def test_floor_at_zero(self):
        """Given more penalty than a category holds, it stops at zero."""
        metrics, overall = score([contribution(Category.SECURITY, Severity.HIGH)] * 5)

        assert metrics.security == 0
        assert overall == 75

    def test_half_up_rounding(self):
        """Given a fractional penalty ending in .5, the metric rounds up."""
        metrics, overall = score([contribution(Category.CODE_QUALITY, Severity.LOW, 0.3)])

        assert metrics.code_quality == 99
        assert overall == 100

    def test_negative_weight_is_clamped(self):
        """Given a negative weight, the contribution cannot raise a metric."""
        metrics, _ = score([contribution(Category.SECURITY, Severity.HIGH, -2.0)])

        assert metrics.security == 100

    def test_nan_weight_counts_as_zero(self):
        """Given a NaN weight, the contribution is ignored instead of failing."""
        metrics, overall = score([contribution(Category.SECURITY, Severity.HIGH, float("nan"))])

        assert metrics.security == 100
        assert overall == 100

    def test_infinite_weight_floors_the_category(self):
        """Given an infinite weight, the category drops to zero."""
        metrics, _ = score([contribution(Category.SECURITY, Severity.LOW, float("inf"))])

        assert metrics.security == 0

    def test_adding_contributions_never_raises_metrics(self):
        """Given a growing list of contributions, metrics only go down."""
        contributions = [
            contribution(Category.SECURITY, Severity.MEDIUM),
            contribution(Category.GAS_EFFICIENCY, Severity.LOW, 0.5),
            contribution(Category.SECURITY, Severity.HIGH),
        ]
        previous, previous_overall = score([])
        for end in range(1, len(contributions) + 1):
            metrics, overall = score(contributions[:end])
            for name, value in metrics.as_dict().items():
                assert value <= previous.as_dict()[name]
            assert overall <= previous_overall
            previous, previous_overall = metrics, overall
