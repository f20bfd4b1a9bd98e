"""
Anomaly selection service.

Turns the 18-entry MetricResult map into the ordered anomaly list shown on the
dashboard:

1. Drop metrics whose severity is normal
2. Attach the combined top-4 dimensional breakdowns to each remaining metric
3. Sort by severity rank (critical > warning > positive), keeping metric-table
   order for equal severities
"""

import logging
from typing import Dict, List, Optional, Sequence, Union

from adpulse.models import AnomalyEntry, BreakdownDimension, MetricResult, Severity
from adpulse.services.aggregation import RowsInput, rows_to_frame
from adpulse.services.breakdown import combine_dimension_breakdowns
from adpulse.services.metric_formulas import METRIC_NAMES, resolve_metric

# Configure module logger
logger = logging.getLogger(__name__)


def _table_order(metrics: Dict[str, MetricResult]) -> List[str]:
    # Canonical metric-table order first, then anything the caller added
    known = [metric.value for metric in METRIC_NAMES if metric.value in metrics]
    return known + [name for name in metrics if name not in known]


def select_anomalies(
    metrics: Dict[str, MetricResult],
    current_rows: RowsInput,
    baseline_rows: RowsInput,
    baseline_day_count: int = 1,
    dimensions: Optional[Sequence[Union[BreakdownDimension, str]]] = None,
    max_workers: int = 1
) -> List[AnomalyEntry]:
    """
    Select non-normal metrics and attribute them to dimension slices.

    Args:
        metrics: MetricResult map keyed by metric name.
        current_rows: Target-day rows.
        baseline_rows: Baseline-window rows.
        baseline_day_count: Distinct baseline dates shared with the metric
            evaluation (>= 1).
        dimensions: Dimensions used for attribution; defaults to the four
            fixed dimensions.
        max_workers: Threads used for per-dimension breakdowns.

    Returns:
        AnomalyEntry list sorted by severity rank descending. Equal ranks keep
        metric-table order (cpc, cpal, ..., clickOuts).

    Raises:
        ValueError: If a metric name is unknown or the rows are malformed.
    """
    current_df = rows_to_frame(current_rows)
    baseline_df = rows_to_frame(baseline_rows)

    anomalies: List[AnomalyEntry] = []
    for name in _table_order(metrics):
        result = metrics[name]
        if result.severity == Severity.NORMAL:
            continue

        metric = resolve_metric(name)
        breakdowns = combine_dimension_breakdowns(
            metric,
            current_df,
            baseline_df,
            baseline_day_count=baseline_day_count,
            dimensions=dimensions,
            max_workers=max_workers,
        )
        logger.debug(
            f"{metric.value}: {result.severity.value} ({result.changePercent:.2f}%), "
            f"{len(breakdowns)} breakdowns"
        )
        anomalies.append(AnomalyEntry(metric=metric, data=result, breakdowns=breakdowns))

    # sorted() is stable, so equal severities keep table order
    return sorted(anomalies, key=lambda entry: entry.data.severity.rank, reverse=True)
