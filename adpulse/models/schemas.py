"""
Pydantic models for the AdPulse anomaly engine.

This module holds every data shape that crosses a component boundary:
- RawRow: one fact record as produced by the external query layer
- AggregatedTotals: summed (or per-day averaged) numeric facts
- Significance / ConfidenceInterval: proportion Z-test outcome
- MetricResult: current vs baseline comparison of one derived metric
- DimensionBreakdown / AnomalyEntry: root-cause attribution output
- AnalysisRequest / AnalysisResponse: analysis run contract
- DailyKPI / KpiSignal / DailyKpiReport: per-date KPI series
- ValidationError: row-level validation detail

Computed results are frozen: they are created once per analysis run and never
mutated afterwards. Field names of result models use camelCase so the JSON
payload matches what the dashboard consumes.

All models use Pydantic v2 syntax.
"""

from datetime import date as DateType
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from adpulse.models.enums import (
    Direction,
    KpiSignalReason,
    MetricName,
    Severity,
)


# =============================================================================
# Input Rows
# =============================================================================


class RawRow(BaseModel):
    """
    One daily fact record for a single dimension combination.

    Field names are the query layer's column names. Numeric facts must be
    finite and non-negative; anything else fails validation here instead of
    leaking NaN into the metric formulas.
    """
    model_config = ConfigDict(
        frozen=True,
        extra='ignore',
        allow_inf_nan=False,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "stats_date_tz": "2024-12-02",
                "account_name": "Acme Search",
                "device": "mobile",
                "campaign_quality": "high",
                "page": "compare",
                "impressions": 1200,
                "clicks": 48,
                "cost": 112.5,
                "revenue": 140.0,
                "lead": 7,
                "approved_leads": 6,
                "click_out": 21,
            }
        }
    )

    stats_date_tz: DateType = Field(
        ...,
        description="Calendar day of the record, already time-zone normalized"
    )

    # Dimensions
    s_advertiser_name: Optional[str] = None
    advertiser_name: Optional[str] = None
    account_name: Optional[str] = None
    publisher_name: Optional[str] = None
    campaign_quality: Optional[str] = None
    page: Optional[str] = None
    campaign_segment: Optional[str] = None
    campaign_name: Optional[str] = None
    ad_group_name: Optional[str] = None
    device: Optional[str] = None
    keyword_name: Optional[str] = None
    match_type: Optional[str] = None

    # Aggregated facts: required, a missing value is an error rather than 0
    impressions: float = Field(..., ge=0)
    clicks: float = Field(..., ge=0)
    cost: float = Field(..., ge=0)
    revenue: float = Field(..., ge=0)
    lead: float = Field(..., ge=0)
    approved_leads: float = Field(..., ge=0)
    click_out: float = Field(..., ge=0)

    # Informational facts, not used by the metric formulas
    sale: float = Field(default=0.0, ge=0)
    approved_sales: float = Field(default=0.0, ge=0)


class ValidationError(BaseModel):
    """
    Validation error detail.

    Used for reporting fact-column problems found before aggregation.
    """
    field: str = Field(
        ...,
        description="Field with validation error"
    )
    message: str = Field(
        ...,
        description="Error message"
    )
    row_number: Optional[int] = Field(
        default=None,
        ge=1,
        description="Row number where error occurred"
    )


# =============================================================================
# Aggregation and Metric Results
# =============================================================================


class AggregatedTotals(BaseModel):
    """
    Sum of numeric facts across a collection of rows.

    The baseline instance holds per-day averages rather than raw sums so it
    compares directly against a single target day. Zero is a valid value.
    """
    model_config = ConfigDict(frozen=True)

    impressions: float = Field(default=0.0, ge=0)
    clicks: float = Field(default=0.0, ge=0)
    cost: float = Field(default=0.0, ge=0)
    revenue: float = Field(default=0.0, ge=0)
    approvedLeads: float = Field(default=0.0, ge=0)
    clickOuts: float = Field(default=0.0, ge=0)
    leads: float = Field(default=0.0, ge=0)


class ConfidenceInterval(BaseModel):
    """95% interval around the baseline rate, in percentage points."""
    model_config = ConfigDict(frozen=True)

    lower: float
    upper: float


class Significance(BaseModel):
    """
    Outcome of the proportion Z-test for a rate metric.

    Only present on a MetricResult when the test applies. Absence means
    "not applicable", which is different from "tested and not significant".
    """
    model_config = ConfigDict(frozen=True)

    standardError: float
    zScore: float
    pValue: float = Field(..., ge=0, le=1)
    confidenceInterval: ConfidenceInterval
    isSignificant: bool
    sampleSize: float = Field(..., ge=0)


class MetricResult(BaseModel):
    """
    Current vs baseline comparison for one derived metric.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "current": 12.81,
                "baseline": 14.31,
                "change": -1.5,
                "changePercent": -10.49,
                "direction": "decrease",
                "severity": "critical",
                "significance": {
                    "standardError": 0.00476,
                    "zScore": -3.154,
                    "pValue": 0.0016,
                    "confidenceInterval": {"lower": 13.37, "upper": 15.23},
                    "isSignificant": True,
                    "sampleSize": 5419,
                },
            }
        }
    )

    current: float
    baseline: float
    change: float
    changePercent: float
    direction: Direction
    severity: Severity
    significance: Optional[Significance] = None


class DimensionBreakdown(BaseModel):
    """
    Change of one metric inside a single dimension value (e.g. device=mobile).
    """
    model_config = ConfigDict(frozen=True)

    dimension: str
    value: str
    changePercent: float
    isPrimaryDriver: bool = False
    isStatisticallySignificant: bool = False
    pValue: Optional[float] = None
    current: float
    baseline: float


class AnomalyEntry(BaseModel):
    """A non-normal metric together with its strongest dimensional drivers."""
    model_config = ConfigDict(frozen=True)

    metric: MetricName
    data: MetricResult
    breakdowns: List[DimensionBreakdown] = Field(default_factory=list)


# =============================================================================
# Analysis Run Contract
# =============================================================================


class AnalysisRequest(BaseModel):
    """
    Input for an analysis run.

    `rows` must contain the target day and the baseline window; everything not
    dated on the target day is treated as baseline.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "targetDate": "2024-12-02",
                "rows": [RawRow.model_config["json_schema_extra"]["example"]],
            }
        }
    )

    targetDate: DateType = Field(
        ...,
        description="Day being checked for anomalies"
    )
    rows: List[RawRow] = Field(
        default_factory=list,
        description="Fact rows for the target day and the baseline window"
    )


class AnalysisResponse(BaseModel):
    """Full result of an analysis run."""
    targetDate: DateType
    baselinePeriod: Optional[str] = Field(
        default=None,
        description="First to last baseline date, or null without baseline rows"
    )
    baselineDayCount: int = Field(..., ge=1)
    currentRowCount: int = Field(default=0, ge=0)
    baselineRowCount: int = Field(default=0, ge=0)
    currentTotals: AggregatedTotals
    baselineTotals: AggregatedTotals
    metrics: Dict[str, MetricResult]
    anomalies: List[AnomalyEntry] = Field(default_factory=list)


# =============================================================================
# Daily KPI Series
# =============================================================================


class DailyKPI(BaseModel):
    """Totals and derived metric values for one calendar day."""
    date: DateType
    isTarget: bool = False
    totals: AggregatedTotals
    metrics: Dict[str, float]


class KpiSignal(BaseModel):
    """Target-day value of one metric checked against the baseline band."""
    metric: MetricName
    current: float
    baseline: float
    changePercent: float
    sampleSize: float
    significant: bool
    reason: KpiSignalReason
    lowerBound: Optional[float] = None
    upperBound: Optional[float] = None


class DailyKpiReport(BaseModel):
    """Per-date KPI series with target-day signals."""
    targetDate: DateType
    days: List[DailyKPI] = Field(default_factory=list)
    baselineAverages: Optional[Dict[str, float]] = None
    signals: List[KpiSignal] = Field(default_factory=list)
