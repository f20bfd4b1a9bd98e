"""
AdPulse Services Module

This module contains the anomaly engine. Every service is a set of pure,
stateless functions over in-memory rows; nothing here performs I/O.

Services:
- aggregation: Row validation, period totals, baseline per-day averaging
- metric_formulas: The 18 derived metrics and their classification
- significance: Abramowitz-Stegun normal CDF and the proportion Z-test
- evaluation: Change, direction and severity per metric
- breakdown: Dimension-value attribution (primary driver, top 4)
- anomaly_selection: Ordered anomaly list with breakdowns
- analysis: End-to-end analysis run for one target day
- daily_kpis: Per-date KPI table with significance bands

All services are consumed by the API layer (adpulse/api/).
"""

# =============================================================================
# Aggregation Service Exports
# =============================================================================

from adpulse.services.aggregation import (
    aggregate_rows,
    aggregate_by,
    average_per_day,
    count_distinct_dates,
    describe_period,
    rows_to_frame,
    split_rows_by_date,
    validate_fact_columns,
    FACT_COLUMNS,
)

# =============================================================================
# Metric Formula Exports
# =============================================================================

from adpulse.services.metric_formulas import (
    calculate_metric_value,
    calculate_all_metric_values,
    get_metric_kind,
    get_sample_size,
    is_lower_better,
    resolve_metric,
    METRIC_FORMULAS,
    METRIC_NAMES,
    RATE_METRICS,
    LOWER_IS_BETTER_METRICS,
)

# =============================================================================
# Significance Exports
# =============================================================================

from adpulse.services.significance import (
    calculate_significance,
    erf,
    normal_cdf,
    two_tailed_p_value,
    MIN_SAMPLE_SIZE,
    SIGNIFICANCE_ALPHA,
)

# =============================================================================
# Evaluation Exports
# =============================================================================

from adpulse.services.evaluation import (
    calculate_change_percent,
    determine_direction,
    determine_severity,
    evaluate_metric,
    evaluate_all_metrics,
)

# =============================================================================
# Breakdown and Anomaly Selection Exports
# =============================================================================

from adpulse.services.breakdown import (
    analyze_dimension_breakdown,
    combine_dimension_breakdowns,
    is_valid_dimension_value,
    MAX_BREAKDOWNS,
)
from adpulse.services.anomaly_selection import select_anomalies

# =============================================================================
# Orchestration Exports
# =============================================================================

from adpulse.services.analysis import run_analysis
from adpulse.services.daily_kpis import (
    build_daily_kpis,
    compute_significance_band,
    evaluate_kpi_signal,
)


__all__ = [
    # Aggregation
    "aggregate_rows",
    "aggregate_by",
    "average_per_day",
    "count_distinct_dates",
    "describe_period",
    "rows_to_frame",
    "split_rows_by_date",
    "validate_fact_columns",
    "FACT_COLUMNS",
    # Metric formulas
    "calculate_metric_value",
    "calculate_all_metric_values",
    "get_metric_kind",
    "get_sample_size",
    "is_lower_better",
    "resolve_metric",
    "METRIC_FORMULAS",
    "METRIC_NAMES",
    "RATE_METRICS",
    "LOWER_IS_BETTER_METRICS",
    # Significance
    "calculate_significance",
    "erf",
    "normal_cdf",
    "two_tailed_p_value",
    "MIN_SAMPLE_SIZE",
    "SIGNIFICANCE_ALPHA",
    # Evaluation
    "calculate_change_percent",
    "determine_direction",
    "determine_severity",
    "evaluate_metric",
    "evaluate_all_metrics",
    # Breakdown / anomalies
    "analyze_dimension_breakdown",
    "combine_dimension_breakdowns",
    "is_valid_dimension_value",
    "MAX_BREAKDOWNS",
    "select_anomalies",
    # Orchestration
    "run_analysis",
    "build_daily_kpis",
    "compute_significance_band",
    "evaluate_kpi_signal",
]
