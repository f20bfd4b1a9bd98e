"""
Proportion Z-test for rate metrics.

Tests whether the target day's rate differs from the baseline rate, treating
the baseline proportion as fixed:

    P  = baseline% / 100          (baseline proportion)
    P1 = current% / 100           (observed proportion)
    SE = sqrt(P * (1 - P) / n)
    z  = (P1 - P) / SE
    p  = 2 * (1 - Phi(|z|))       (two-tailed)
    CI = [max(0, P - 1.96 SE), min(1, P + 1.96 SE)] * 100   (around the baseline)

The test only applies to rate metrics with at least MIN_SAMPLE_SIZE trials and
a non-degenerate baseline proportion (0 < P < 1). Otherwise no Significance is
produced, which callers must read as "not applicable".

Phi is computed through the Abramowitz-Stegun 7.1.26 approximation of the
error function (max absolute error about 1.5e-7).
"""

import math
from typing import Optional, Union

from adpulse.models import ConfidenceInterval, MetricKind, Significance


# =============================================================================
# Constants
# =============================================================================

# Abramowitz-Stegun 7.1.26 coefficients
ERF_A1: float = 0.254829592
ERF_A2: float = -0.284496736
ERF_A3: float = 1.421413741
ERF_A4: float = -1.453152027
ERF_A5: float = 1.061405429
ERF_P: float = 0.3275911

# Minimum number of trials for the normal approximation to hold
MIN_SAMPLE_SIZE: int = 30

# Two-tailed significance level
SIGNIFICANCE_ALPHA: float = 0.05

# z critical value for a 95% confidence interval
Z_CRITICAL_95: float = 1.96


# =============================================================================
# Normal Distribution Kernel
# =============================================================================


def erf(x: float) -> float:
    """
    Error function via the Abramowitz-Stegun approximation.

    erf is odd, so negative inputs are evaluated at |x| and negated.

    Example:
        >>> round(erf(1.0), 4)
        0.8427
    """
    sign = -1.0 if x < 0 else 1.0
    x = abs(x)

    t = 1.0 / (1.0 + ERF_P * x)
    poly = ((((ERF_A5 * t + ERF_A4) * t + ERF_A3) * t + ERF_A2) * t + ERF_A1) * t
    return sign * (1.0 - poly * math.exp(-x * x))


def normal_cdf(z: float) -> float:
    """
    Standard normal cumulative distribution function.

    Example:
        >>> round(normal_cdf(1.96), 3)
        0.975
    """
    return 0.5 * (1.0 + erf(z / math.sqrt(2.0)))


def two_tailed_p_value(z_score: float) -> float:
    """Two-tailed p-value for a z statistic."""
    return 2.0 * (1.0 - normal_cdf(abs(z_score)))


# =============================================================================
# Significance Test
# =============================================================================


def calculate_significance(
    current_pct: float,
    baseline_pct: float,
    sample_size: float,
    metric_kind: Union[MetricKind, str]
) -> Optional[Significance]:
    """
    Run the proportion Z-test for one rate metric.

    Args:
        current_pct: Target-day value in percentage points (e.g. 12.8).
        baseline_pct: Baseline value in percentage points (e.g. 14.3).
        sample_size: Trials behind the current rate (see get_sample_size).
        metric_kind: MetricKind of the metric; only RATE is tested.

    Returns:
        Significance when the test applies, otherwise None:
        - metric_kind is not RATE
        - sample_size < MIN_SAMPLE_SIZE
        - baseline proportion outside the open interval (0, 1)

    Raises:
        ValueError: If sample_size is negative.

    Example:
        >>> sig = calculate_significance(12.8, 14.3, 5419, MetricKind.RATE)
        >>> round(sig.zScore, 2), sig.isSignificant
        (-3.15, True)
    """
    if sample_size < 0:
        raise ValueError(f"Sample size must be non-negative, got {sample_size}")

    if MetricKind(metric_kind) != MetricKind.RATE or sample_size < MIN_SAMPLE_SIZE:
        return None

    p_baseline = baseline_pct / 100
    p_current = current_pct / 100
    if p_baseline <= 0 or p_baseline >= 1:
        return None

    standard_error = math.sqrt(p_baseline * (1 - p_baseline) / sample_size)
    z_score = (p_current - p_baseline) / standard_error if standard_error > 0 else 0.0
    p_value = two_tailed_p_value(z_score)

    margin = Z_CRITICAL_95 * standard_error
    confidence_interval = ConfidenceInterval(
        lower=max(0.0, p_baseline - margin) * 100,
        upper=min(1.0, p_baseline + margin) * 100,
    )

    return Significance(
        standardError=standard_error,
        zScore=z_score,
        pValue=p_value,
        confidenceInterval=confidence_interval,
        isSignificant=p_value < SIGNIFICANCE_ALPHA,
        sampleSize=sample_size,
    )
