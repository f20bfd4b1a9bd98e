"""
Enumeration definitions for the AdPulse anomaly engine.

All enums inherit from both `str` and `Enum` so they serialize to plain strings
inside Pydantic models and API responses.

Contents:
- MetricName: the 18 derived metrics, in canonical table order
- MetricKind: rate (percentage, significance-testable) vs value metrics
- Direction / Severity: comparison outcome labels
- BreakdownDimension: the fixed dimensions used for root-cause attribution
- KpiSignalReason: outcome labels for the daily KPI significance band
"""

from enum import Enum


class MetricName(str, Enum):
    """
    Named derived metrics computed from aggregated totals.

    Declaration order is the canonical metric-table order. The anomaly list
    relies on it as the stable tie-break when two metrics share a severity.

    Cost metrics (lower is better):
    - cpc: cost per click
    - cpal: cost per approved lead
    - cpoc: cost per click-out
    - cpl: cost per lead

    Performance metrics (higher is better):
    - roi, revenue, ctr, cvr, sctr, cotal, epoc, epl, epal, octl

    Volume metrics:
    - clicks, impressions, approvedLeads, clickOuts
    """
    CPC = "cpc"
    CPAL = "cpal"
    CPOC = "cpoc"
    CPL = "cpl"
    ROI = "roi"
    REVENUE = "revenue"
    CTR = "ctr"
    CVR = "cvr"
    SCTR = "sctr"
    COTAL = "cotal"
    EPOC = "epoc"
    EPL = "epl"
    EPAL = "epal"
    OCTL = "octl"
    CLICKS = "clicks"
    IMPRESSIONS = "impressions"
    APPROVED_LEADS = "approvedLeads"
    CLICK_OUTS = "clickOuts"


class MetricKind(str, Enum):
    """
    Statistical classification of a metric.

    - rate: bounded percentage, eligible for the proportion Z-test
    - value: unbounded money or volume figure, never tested
    """
    RATE = "rate"
    VALUE = "value"


class Direction(str, Enum):
    """Direction of change; stable when |changePercent| < 1."""
    INCREASE = "increase"
    DECREASE = "decrease"
    STABLE = "stable"


class Severity(str, Enum):
    """
    Severity of a metric change.

    - critical: unfavorable change of 10% or more
    - warning: unfavorable change between 5% and 10%
    - positive: favorable change of 5% or more
    - normal: change under 5% in either direction
    """
    CRITICAL = "critical"
    WARNING = "warning"
    POSITIVE = "positive"
    NORMAL = "normal"

    @property
    def rank(self) -> int:
        """Ordering weight used when sorting anomalies (higher first)."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 3,
    Severity.WARNING: 2,
    Severity.POSITIVE: 1,
    Severity.NORMAL: 0,
}


class BreakdownDimension(str, Enum):
    """
    Categorical row fields used for anomaly attribution.

    Values are the RawRow column names so they can index rows directly.
    """
    DEVICE = "device"
    ACCOUNT_NAME = "account_name"
    CAMPAIGN_QUALITY = "campaign_quality"
    PAGE = "page"


class KpiSignalReason(str, Enum):
    """
    Outcome of the daily KPI significance band check.

    - low_volume: sample size under the minimum, not evaluated
    - outside_threshold: current value outside the baseline band (significant)
    - within_threshold: current value inside the band
    - zero_value: a volume metric collapsed to zero on meaningful traffic
    - not_tested: the metric has no applicable test
    """
    LOW_VOLUME = "low_volume"
    OUTSIDE_THRESHOLD = "outside_threshold"
    WITHIN_THRESHOLD = "within_threshold"
    ZERO_VALUE = "zero_value"
    NOT_TESTED = "not_tested"
