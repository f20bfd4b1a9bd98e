"""
Package initialization file for AdPulse models.

Re-exports all Pydantic schemas and enumerations so callers can write:

    from adpulse.models import MetricName, MetricResult, RawRow
"""

# =============================================================================
# Enums
# =============================================================================

from adpulse.models.enums import (
    BreakdownDimension,
    Direction,
    KpiSignalReason,
    MetricKind,
    MetricName,
    Severity,
)


# =============================================================================
# Schemas
# =============================================================================

from adpulse.models.schemas import (
    # Input rows
    RawRow,
    ValidationError,
    # Aggregation and metric results
    AggregatedTotals,
    ConfidenceInterval,
    Significance,
    MetricResult,
    DimensionBreakdown,
    AnomalyEntry,
    # Analysis run contract
    AnalysisRequest,
    AnalysisResponse,
    # Daily KPI series
    DailyKPI,
    KpiSignal,
    DailyKpiReport,
)


__all__ = [
    # Enums
    "BreakdownDimension",
    "Direction",
    "KpiSignalReason",
    "MetricKind",
    "MetricName",
    "Severity",
    # Schemas
    "RawRow",
    "ValidationError",
    "AggregatedTotals",
    "ConfidenceInterval",
    "Significance",
    "MetricResult",
    "DimensionBreakdown",
    "AnomalyEntry",
    "AnalysisRequest",
    "AnalysisResponse",
    "DailyKPI",
    "KpiSignal",
    "DailyKpiReport",
]
