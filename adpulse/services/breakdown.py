"""
Dimensional breakdown service - which slice drove a metric change.

For one metric and one dimension (device, account, campaign quality, page),
the engine re-runs aggregation, the formula table and the significance test
per dimension value, then ranks the values by how much the metric moved.

Algorithm Overview:
1. Drop rows whose dimension value is meaningless (null, "", "-", "null",
   "undefined", any casing of "unknown")
2. For each value seen on the target day:
   * current totals = sum of that value's target-day rows
   * baseline totals = sum of that value's baseline rows / baseline_day_count
     (the run-wide distinct-date count, never recomputed per value)
   * current / baseline / changePercent / significance as for the parent metric
3. Keep a value when its change is statistically significant OR
   |changePercent| >= 5
4. Sort by |changePercent| descending (stable: ties keep first-seen order)
5. Flag the first entry as primary driver, truncate to 4

Cross-dimension combination concatenates the per-dimension lists, re-sorts
them, truncates to 4 and re-flags the single primary driver. No per-dimension
quota applies.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional, Sequence, Union

import pandas as pd

from adpulse.models import AggregatedTotals, BreakdownDimension, DimensionBreakdown, MetricName
from adpulse.services.aggregation import RowsInput, aggregate_by, average_per_day, rows_to_frame
from adpulse.services.evaluation import WARNING_THRESHOLD_PCT, calculate_change_percent
from adpulse.services.metric_formulas import (
    calculate_metric_value,
    get_metric_kind,
    get_sample_size,
    resolve_metric,
)
from adpulse.services.significance import calculate_significance

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Maximum breakdown entries per dimension and per anomaly
MAX_BREAKDOWNS: int = 4

# Minimum |changePercent| for a slice to qualify without a significant test
MIN_SLICE_CHANGE_PCT: float = WARNING_THRESHOLD_PCT

# Placeholder values emitted by upstream systems for a missing dimension
INVALID_DIMENSION_VALUES = frozenset({'', '-', 'null', 'undefined'})

DEFAULT_DIMENSIONS: List[BreakdownDimension] = list(BreakdownDimension)


# =============================================================================
# Dimension Value Filtering
# =============================================================================


def is_valid_dimension_value(value: Any) -> bool:
    """
    Decide whether a dimension value can be used for attribution.

    Rejected: None / NaN, empty string, "-", "null", "undefined", and
    "unknown" in any casing. Surrounding whitespace is ignored.

    Example:
        >>> is_valid_dimension_value("mobile")
        True
        >>> is_valid_dimension_value("Unknown")
        False
    """
    if value is None:
        return False
    if isinstance(value, float) and pd.isna(value):
        return False

    text = str(value).strip()
    if text in INVALID_DIMENSION_VALUES:
        return False
    return text.lower() != 'unknown'


def _valid_slices(df: pd.DataFrame, dimension: str) -> pd.DataFrame:
    if df.empty or dimension not in df.columns:
        return df.iloc[0:0]
    return df[df[dimension].map(is_valid_dimension_value)]


# =============================================================================
# Single-Dimension Breakdown
# =============================================================================


def _dimension_name(dimension: Union[BreakdownDimension, str]) -> str:
    return dimension.value if isinstance(dimension, BreakdownDimension) else str(dimension)


def mark_primary_driver(breakdowns: List[DimensionBreakdown]) -> List[DimensionBreakdown]:
    """Flag the first entry as primary driver and clear the flag elsewhere."""
    return [
        entry.model_copy(update={'isPrimaryDriver': index == 0})
        for index, entry in enumerate(breakdowns)
    ]


def _rank(breakdowns: List[DimensionBreakdown]) -> List[DimensionBreakdown]:
    ranked = sorted(breakdowns, key=lambda entry: abs(entry.changePercent), reverse=True)
    return mark_primary_driver(ranked[:MAX_BREAKDOWNS])


def analyze_dimension_breakdown(
    metric_name: Union[MetricName, str],
    current_rows: RowsInput,
    baseline_rows: RowsInput,
    dimension: Union[BreakdownDimension, str],
    baseline_day_count: int = 1
) -> List[DimensionBreakdown]:
    """
    Rank the values of one dimension by how much they moved a metric.

    Args:
        metric_name: Metric under investigation.
        current_rows: Target-day rows.
        baseline_rows: Baseline-window rows.
        dimension: Row column to slice by.
        baseline_day_count: Distinct dates in the baseline window, shared with
            the parent metric computation. Must be >= 1.

    Returns:
        Up to 4 DimensionBreakdown entries sorted by |changePercent|
        descending; exactly one is the primary driver when non-empty.

    Raises:
        ValueError: If baseline_day_count < 1, the metric is unknown or the
            rows are malformed.
    """
    if baseline_day_count < 1:
        raise ValueError(f"Baseline day count must be >= 1, got {baseline_day_count}")

    metric = resolve_metric(metric_name)
    metric_kind = get_metric_kind(metric)
    column = _dimension_name(dimension)

    current_groups = aggregate_by(_valid_slices(rows_to_frame(current_rows), column), column)
    baseline_groups = aggregate_by(_valid_slices(rows_to_frame(baseline_rows), column), column)

    breakdowns: List[DimensionBreakdown] = []
    for value, current_totals in current_groups.items():
        baseline_totals = average_per_day(
            baseline_groups.get(value, AggregatedTotals()),
            baseline_day_count
        )

        current = calculate_metric_value(metric, current_totals)
        baseline = calculate_metric_value(metric, baseline_totals)
        change_percent = calculate_change_percent(current, baseline)
        significance = calculate_significance(
            current_pct=current,
            baseline_pct=baseline,
            sample_size=get_sample_size(metric, current_totals),
            metric_kind=metric_kind,
        )

        is_significant = significance is not None and significance.isSignificant
        if not is_significant and abs(change_percent) < MIN_SLICE_CHANGE_PCT:
            continue

        breakdowns.append(DimensionBreakdown(
            dimension=column,
            value=str(value),
            changePercent=change_percent,
            isStatisticallySignificant=is_significant,
            pValue=significance.pValue if significance is not None else None,
            current=current,
            baseline=baseline,
        ))

    return _rank(breakdowns)


# =============================================================================
# Cross-Dimension Combination
# =============================================================================


def combine_dimension_breakdowns(
    metric_name: Union[MetricName, str],
    current_rows: RowsInput,
    baseline_rows: RowsInput,
    baseline_day_count: int = 1,
    dimensions: Optional[Sequence[Union[BreakdownDimension, str]]] = None,
    max_workers: int = 1
) -> List[DimensionBreakdown]:
    """
    Top breakdowns for a metric across several dimensions.

    Each dimension is analyzed independently, the lists are concatenated in
    dimension order, re-sorted by |changePercent| and truncated to 4. All
    four entries may come from a single dominant dimension.

    Args:
        metric_name: Metric under investigation.
        current_rows: Target-day rows.
        baseline_rows: Baseline-window rows.
        baseline_day_count: Run-wide distinct baseline dates (>= 1).
        dimensions: Dimensions to analyze; defaults to device, account_name,
            campaign_quality and page.
        max_workers: Threads used to analyze dimensions concurrently. The
            result does not depend on this value.

    Returns:
        Up to 4 DimensionBreakdown entries with a single primary driver.
    """
    if dimensions is None:
        dimensions = DEFAULT_DIMENSIONS

    current_df = rows_to_frame(current_rows)
    baseline_df = rows_to_frame(baseline_rows)

    def run(dimension: Union[BreakdownDimension, str]) -> List[DimensionBreakdown]:
        return analyze_dimension_breakdown(
            metric_name, current_df, baseline_df, dimension, baseline_day_count
        )

    if max_workers > 1 and len(dimensions) > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(dimensions))) as executor:
            per_dimension = list(executor.map(run, dimensions))
    else:
        per_dimension = [run(dimension) for dimension in dimensions]

    combined = [entry for entries in per_dimension for entry in entries]
    logger.debug(
        f"{resolve_metric(metric_name).value}: {len(combined)} breakdown candidates "
        f"across {len(dimensions)} dimensions"
    )
    return _rank(combined)
