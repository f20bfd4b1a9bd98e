"""
Daily KPI series for the dashboard table.

Builds one row of totals and derived metrics per calendar date (newest first)
and checks the target day against a significance band built from the
baseline days.

Baseline Averages:
    Unlike the analysis run, which averages the baseline TOTALS per day and
    then derives the metrics, this table averages the daily metric VALUES.
    The two numbers differ for ratio metrics on purpose: the table shows what
    a typical day looked like.

Target-Day Signal Rules (checked in order):
1. sample size < 20                                    -> low_volume
2. rate metric, 0 < baseline/100 < 1:
   band = baseline +/- 1.96 * sqrt(P(1-P)/n) * 100, clamped to [0, 100]
   current outside the band                            -> outside_threshold
   current inside the band                             -> within_threshold
3. approvedLeads == 0 with sample size > 50            -> zero_value
4. anything else                                       -> not_tested

Sample Size:
    Every signal uses the same per-metric trial count as the analysis run:
    impressions for ctr, clickOuts for cotal and octl, clicks for everything
    else. cpal and roi are therefore sized by clicks rather than approved
    leads, and cpoc by clicks rather than click outs. octl is a rate metric
    here too and gets a band.

    A zero baseline yields changePercent 0, the same as in the analysis run;
    the value is reported as is rather than hidden.
"""

import logging
import math
from datetime import date
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from adpulse.models import (
    AggregatedTotals,
    DailyKPI,
    DailyKpiReport,
    KpiSignal,
    KpiSignalReason,
    MetricName,
)
from adpulse.services.aggregation import DATE_COLUMN, RowsInput, aggregate_by, rows_to_frame
from adpulse.services.evaluation import calculate_change_percent
from adpulse.services.metric_formulas import (
    METRIC_NAMES,
    RATE_METRICS,
    calculate_all_metric_values,
    get_sample_size,
    resolve_metric,
)
from adpulse.services.significance import Z_CRITICAL_95

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Below this many trials the target day is flagged as low volume
KPI_MIN_SAMPLE_SIZE: int = 20

# approvedLeads dropping to zero only counts on at least this much traffic
ZERO_VALUE_MIN_SAMPLE_SIZE: int = 50


# =============================================================================
# Significance Band
# =============================================================================


def compute_significance_band(
    baseline_pct: float,
    sample_size: float
) -> Optional[Tuple[float, float]]:
    """
    95% band around a baseline rate, in percentage points.

    Args:
        baseline_pct: Baseline rate in percentage points.
        sample_size: Target-day trials behind the rate.

    Returns:
        (lower, upper) clamped to [0, 100], or None when the baseline
        proportion is not strictly between 0 and 1 or there are no trials.

    Example:
        >>> lower, upper = compute_significance_band(50.0, 100)
        >>> round(lower, 2), round(upper, 2)
        (40.2, 59.8)
    """
    p = baseline_pct / 100
    if p <= 0 or p >= 1 or sample_size <= 0:
        return None

    margin = Z_CRITICAL_95 * math.sqrt(p * (1 - p) / sample_size) * 100
    return max(0.0, baseline_pct - margin), min(100.0, baseline_pct + margin)


def evaluate_kpi_signal(
    metric_name: Union[MetricName, str],
    current: float,
    baseline: float,
    sample_size: float
) -> KpiSignal:
    """
    Check one target-day metric against its baseline average.

    Args:
        metric_name: Metric being checked.
        current: Target-day metric value.
        baseline: Mean of the daily baseline values.
        sample_size: Target-day trials for the metric.

    Returns:
        KpiSignal with the outcome and, for tested rate metrics, the band.
    """
    metric = resolve_metric(metric_name)
    signal = dict(
        metric=metric,
        current=current,
        baseline=baseline,
        changePercent=calculate_change_percent(current, baseline),
        sampleSize=sample_size,
    )

    if sample_size < KPI_MIN_SAMPLE_SIZE:
        return KpiSignal(**signal, significant=False, reason=KpiSignalReason.LOW_VOLUME)

    if metric in RATE_METRICS:
        band = compute_significance_band(baseline, sample_size)
        if band is None:
            return KpiSignal(**signal, significant=False, reason=KpiSignalReason.NOT_TESTED)

        lower, upper = band
        is_outside = current < lower or current > upper
        return KpiSignal(
            **signal,
            significant=is_outside,
            reason=KpiSignalReason.OUTSIDE_THRESHOLD if is_outside else KpiSignalReason.WITHIN_THRESHOLD,
            lowerBound=lower,
            upperBound=upper,
        )

    if (
        metric == MetricName.APPROVED_LEADS
        and current == 0
        and sample_size > ZERO_VALUE_MIN_SAMPLE_SIZE
    ):
        return KpiSignal(**signal, significant=True, reason=KpiSignalReason.ZERO_VALUE)

    return KpiSignal(**signal, significant=False, reason=KpiSignalReason.NOT_TESTED)


# =============================================================================
# Daily Series
# =============================================================================


def _baseline_averages(days: List[DailyKPI]) -> Optional[Dict[str, float]]:
    baseline_days = [day for day in days if not day.isTarget]
    if not baseline_days:
        return None

    return {
        metric.value: float(np.mean([day.metrics[metric.value] for day in baseline_days]))
        for metric in METRIC_NAMES
    }


def build_daily_kpis(rows: RowsInput, target_date: date) -> DailyKpiReport:
    """
    Build the per-date KPI table with target-day signals.

    Args:
        rows: Fact rows spanning the target day and the baseline window.
        target_date: Day highlighted in the table and checked for signals.

    Returns:
        DailyKpiReport with days sorted newest first. Signals are empty when
        the target day has no rows or there are no baseline days.

    Raises:
        ValueError: If the rows are malformed.
    """
    per_date: Dict[date, AggregatedTotals] = aggregate_by(rows_to_frame(rows), DATE_COLUMN)

    days = [
        DailyKPI(
            date=day,
            isTarget=day == target_date,
            totals=totals,
            metrics=calculate_all_metric_values(totals),
        )
        for day, totals in sorted(per_date.items(), key=lambda item: item[0], reverse=True)
    ]
    baseline_averages = _baseline_averages(days)

    signals: List[KpiSignal] = []
    target_day = next((day for day in days if day.isTarget), None)
    if target_day is None:
        logger.warning(f"No rows dated {target_date.isoformat()}, KPI signals skipped")
    elif baseline_averages is not None:
        signals = [
            evaluate_kpi_signal(
                metric,
                current=target_day.metrics[metric.value],
                baseline=baseline_averages[metric.value],
                sample_size=get_sample_size(metric, target_day.totals),
            )
            for metric in METRIC_NAMES
        ]

    logger.info(
        f"Daily KPIs for {target_date.isoformat()}: {len(days)} days, "
        f"{sum(1 for s in signals if s.significant)} significant signals"
    )

    return DailyKpiReport(
        targetDate=target_date,
        days=days,
        baselineAverages=baseline_averages,
        signals=signals,
    )
