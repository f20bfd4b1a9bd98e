"""
Metric evaluation service for the AdPulse anomaly engine.

Combines the formula table, the significance test and the severity rules into
one MetricResult per metric, comparing the target day against the per-day
baseline.

Comparison Rules:
- change = current - baseline
- changePercent = change / baseline * 100, or 0 when baseline is 0
- direction = stable if |changePercent| < 1, else increase / decrease by sign

Severity Rules (evaluated in order):
1. |changePercent| < 5                          -> normal
2. favorable change (polarity-aware)            -> positive, however large
3. unfavorable and |changePercent| >= 10        -> critical
4. unfavorable and 5 <= |changePercent| < 10    -> warning

Severity deliberately ignores statistical significance: a metric with too few
trials for the Z-test can still be critical on magnitude alone.
"""

from typing import Dict, Union

from adpulse.models import AggregatedTotals, Direction, MetricName, MetricResult, Severity
from adpulse.services.metric_formulas import (
    METRIC_NAMES,
    calculate_metric_value,
    get_metric_kind,
    get_sample_size,
    is_lower_better,
    resolve_metric,
)
from adpulse.services.significance import calculate_significance


# =============================================================================
# Constants
# =============================================================================

# |changePercent| below this is reported as stable
STABLE_THRESHOLD_PCT: float = 1.0

# |changePercent| below this is always normal
WARNING_THRESHOLD_PCT: float = 5.0

# Unfavorable |changePercent| at or above this is critical
CRITICAL_THRESHOLD_PCT: float = 10.0


# =============================================================================
# Comparison Helpers
# =============================================================================


def calculate_change_percent(current: float, baseline: float) -> float:
    """
    Relative change from baseline, in percent.

    Returns 0 when the baseline is 0 instead of infinity or NaN.

    Example:
        >>> calculate_change_percent(110.0, 100.0)
        10.0
        >>> calculate_change_percent(1_000_000.0, 0.0)
        0.0
    """
    if baseline == 0:
        return 0.0
    return (current - baseline) / baseline * 100


def determine_direction(change_percent: float) -> Direction:
    """Classify a relative change as increase, decrease or stable."""
    if abs(change_percent) < STABLE_THRESHOLD_PCT:
        return Direction.STABLE
    return Direction.INCREASE if change_percent > 0 else Direction.DECREASE


def determine_severity(
    metric_name: Union[MetricName, str],
    change_percent: float,
    direction: Direction
) -> Severity:
    """
    Classify a metric change as critical, warning, positive or normal.

    Args:
        metric_name: Metric being classified; decides the favorable direction.
        change_percent: Relative change from baseline, in percent.
        direction: Direction derived from change_percent.

    Returns:
        Severity of the change.

    Example:
        >>> determine_severity("cpc", -20.0, Direction.DECREASE)
        <Severity.POSITIVE: 'positive'>
        >>> determine_severity("cvr", -10.5, Direction.DECREASE)
        <Severity.CRITICAL: 'critical'>
    """
    abs_change = abs(change_percent)

    if abs_change < WARNING_THRESHOLD_PCT:
        return Severity.NORMAL

    lower_is_better = is_lower_better(metric_name)
    is_good_change = (
        (lower_is_better and direction == Direction.DECREASE)
        or (not lower_is_better and direction == Direction.INCREASE)
    )

    if is_good_change:
        return Severity.POSITIVE

    if abs_change >= CRITICAL_THRESHOLD_PCT:
        return Severity.CRITICAL

    return Severity.WARNING


# =============================================================================
# Evaluation
# =============================================================================


def evaluate_metric(
    metric_name: Union[MetricName, str],
    current_totals: AggregatedTotals,
    baseline_totals: AggregatedTotals
) -> MetricResult:
    """
    Compare one metric between the target day and the per-day baseline.

    Args:
        metric_name: Metric to evaluate.
        current_totals: Totals of the target day.
        baseline_totals: Per-day averaged baseline totals.

    Returns:
        MetricResult with values, change, direction, severity and, for rate
        metrics with enough current-day trials, a Significance.

    Raises:
        ValueError: If metric_name is unknown.
    """
    metric = resolve_metric(metric_name)

    current = calculate_metric_value(metric, current_totals)
    baseline = calculate_metric_value(metric, baseline_totals)
    change_percent = calculate_change_percent(current, baseline)
    direction = determine_direction(change_percent)

    significance = calculate_significance(
        current_pct=current,
        baseline_pct=baseline,
        sample_size=get_sample_size(metric, current_totals),
        metric_kind=get_metric_kind(metric),
    )

    return MetricResult(
        current=current,
        baseline=baseline,
        change=current - baseline,
        changePercent=change_percent,
        direction=direction,
        severity=determine_severity(metric, change_percent, direction),
        significance=significance,
    )


def evaluate_all_metrics(
    current_totals: AggregatedTotals,
    baseline_totals: AggregatedTotals
) -> Dict[str, MetricResult]:
    """
    Evaluate all 18 metrics.

    Returns:
        Dict keyed by metric name, in canonical metric-table order.
    """
    return {
        metric.value: evaluate_metric(metric, current_totals, baseline_totals)
        for metric in METRIC_NAMES
    }
