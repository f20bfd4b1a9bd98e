"""
Analysis run orchestration.

Runs the full anomaly pipeline for one target day over a window of fact rows:

    rows
      -> split into target-day rows and baseline rows
      -> D = distinct baseline dates (computed once, D = 0 treated as 1)
      -> current totals, baseline totals / D
      -> 18 MetricResults
      -> anomalies with dimensional breakdowns (reusing D)

The same D feeds the metric evaluation and every dimensional breakdown, so a
dimension value missing on some baseline days is still averaged over the
whole window.
"""

import logging
from datetime import date
from typing import Optional, Sequence, Union

from adpulse.core.config import get_settings
from adpulse.models import AnalysisResponse, BreakdownDimension, Severity
from adpulse.services.aggregation import (
    RowsInput,
    aggregate_rows,
    average_per_day,
    count_distinct_dates,
    describe_period,
    split_rows_by_date,
)
from adpulse.services.anomaly_selection import select_anomalies
from adpulse.services.evaluation import evaluate_all_metrics

# Configure module logger
logger = logging.getLogger(__name__)


def resolve_baseline_day_count(distinct_dates: int) -> int:
    """
    Day count used for baseline averaging.

    Without baseline rows the totals are all zero, so dividing by 1 keeps
    them zero and every changePercent falls back to 0.
    """
    return max(distinct_dates, 1)


def run_analysis(
    rows: RowsInput,
    target_date: date,
    dimensions: Optional[Sequence[Union[BreakdownDimension, str]]] = None,
    max_workers: Optional[int] = None
) -> AnalysisResponse:
    """
    Detect anomalies for one day against the rest of the row window.

    Args:
        rows: Fact rows for the target day and the baseline window.
        target_date: Day under analysis; every other date is baseline.
        dimensions: Attribution dimensions. Defaults to
            settings.breakdown_dimensions.
        max_workers: Breakdown thread pool size. Defaults to
            settings.breakdown_workers.

    Returns:
        AnalysisResponse with totals, the 18-metric map and the ordered
        anomaly list.

    Raises:
        ValueError: If the rows are malformed.
    """
    settings = get_settings()
    if dimensions is None:
        dimensions = settings.breakdown_dimensions
    if max_workers is None:
        max_workers = settings.breakdown_workers

    current_rows, baseline_rows = split_rows_by_date(rows, target_date)

    distinct_dates = count_distinct_dates(baseline_rows)
    if distinct_dates == 0:
        logger.warning(
            f"No baseline rows before {target_date.isoformat()}, "
            "baseline totals are zero and every change is reported as 0%"
        )
    baseline_day_count = resolve_baseline_day_count(distinct_dates)

    logger.info(
        f"Analyzing {target_date.isoformat()}: {len(current_rows)} current rows, "
        f"{len(baseline_rows)} baseline rows over {baseline_day_count} day(s)"
    )

    current_totals = aggregate_rows(current_rows)
    baseline_totals = average_per_day(aggregate_rows(baseline_rows), baseline_day_count)

    metrics = evaluate_all_metrics(current_totals, baseline_totals)
    anomalies = select_anomalies(
        metrics,
        current_rows,
        baseline_rows,
        baseline_day_count=baseline_day_count,
        dimensions=dimensions,
        max_workers=max_workers,
    )

    logger.info(
        f"Analysis for {target_date.isoformat()} found {len(anomalies)} anomalies "
        f"({sum(1 for a in anomalies if a.data.severity == Severity.CRITICAL)} critical)"
    )

    return AnalysisResponse(
        targetDate=target_date,
        baselinePeriod=describe_period(baseline_rows),
        baselineDayCount=baseline_day_count,
        currentRowCount=len(current_rows),
        baselineRowCount=len(baseline_rows),
        currentTotals=current_totals,
        baselineTotals=baseline_totals,
        metrics=metrics,
        anomalies=anomalies,
    )
