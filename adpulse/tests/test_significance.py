"""
Test suite for the proportion Z-test.

The tests verify:
1. The erf / normal CDF kernel against reference points
2. Gating: value metrics, small samples and degenerate baselines are not tested
3. The CVR reference example (z about -3.15, significant)
4. Confidence interval is centered on the baseline and clamped
"""

import math

import pytest

from adpulse.models import MetricKind
from adpulse.services.significance import (
    MIN_SAMPLE_SIZE,
    calculate_significance,
    erf,
    normal_cdf,
    two_tailed_p_value,
)


class TestNormalKernel:
    """erf and normal CDF reference points."""

    def test_cdf_at_zero(self):
        assert normal_cdf(0.0) == pytest.approx(0.5, abs=1e-6)

    def test_cdf_at_1_96(self):
        assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-4)

    def test_cdf_symmetry(self):
        assert normal_cdf(-1.0) == pytest.approx(1 - normal_cdf(1.0), abs=1e-7)

    @pytest.mark.parametrize("x", [-2.0, -0.5, 0.3, 1.0, 2.5])
    def test_erf_matches_math_erf(self, x):
        """Approximation error stays under 1.5e-7."""
        assert erf(x) == pytest.approx(math.erf(x), abs=2e-7)

    def test_erf_is_odd(self):
        assert erf(-0.7) == -erf(0.7)

    def test_p_value_at_critical_z(self):
        assert two_tailed_p_value(1.96) == pytest.approx(0.05, abs=1e-3)


class TestGating:
    """When the test does not apply, no Significance is produced."""

    def test_value_metric_not_tested(self):
        assert calculate_significance(2.5, 2.0, 10000, MetricKind.VALUE) is None

    def test_sample_size_below_minimum(self):
        assert calculate_significance(12.0, 15.0, MIN_SAMPLE_SIZE - 1, MetricKind.RATE) is None

    def test_baseline_proportion_zero(self):
        assert calculate_significance(5.0, 0.0, 30, MetricKind.RATE) is None

    def test_baseline_proportion_one_or_more(self):
        """roi above 100% is a rate metric but not a valid proportion."""
        assert calculate_significance(98.0, 103.6, 5000, "rate") is None
        assert calculate_significance(90.0, 100.0, 5000, "rate") is None

    def test_negative_sample_size_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            calculate_significance(10.0, 12.0, -1, MetricKind.RATE)


class TestZTest:
    """Numerical behavior of the proportion Z-test."""

    def test_no_change_at_minimum_sample(self):
        """sampleSize 30, 50% vs 50%: z 0, p 1, not significant."""
        sig = calculate_significance(50.0, 50.0, 30, MetricKind.RATE)

        assert sig is not None
        assert sig.zScore == 0
        assert sig.pValue == pytest.approx(1.0, abs=1e-6)
        assert sig.isSignificant is False
        assert sig.sampleSize == 30

    def test_cvr_reference_example(self):
        """14.3% baseline vs 12.8% current over 5419 clicks."""
        sig = calculate_significance(12.8, 14.3, 5419, MetricKind.RATE)

        assert sig.standardError == pytest.approx(0.00476, abs=1e-5)
        assert sig.zScore == pytest.approx(-3.15, abs=0.01)
        assert sig.pValue < 0.01
        assert sig.isSignificant is True

    def test_confidence_interval_around_baseline(self):
        sig = calculate_significance(12.8, 14.3, 5419, MetricKind.RATE)

        margin = 1.96 * sig.standardError * 100
        assert sig.confidenceInterval.lower == pytest.approx(14.3 - margin)
        assert sig.confidenceInterval.upper == pytest.approx(14.3 + margin)

    def test_confidence_interval_clamped_at_zero(self):
        """A tiny baseline with few trials never produces a negative bound."""
        sig = calculate_significance(1.0, 0.5, 30, MetricKind.RATE)
        assert sig.confidenceInterval.lower == 0.0

    def test_small_change_not_significant(self):
        sig = calculate_significance(14.2, 14.3, 5419, MetricKind.RATE)
        assert sig.isSignificant is False
        assert 0 <= sig.pValue <= 1
