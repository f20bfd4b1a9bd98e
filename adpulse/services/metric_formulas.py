"""
Metric formula table for the AdPulse anomaly engine.

Maps aggregated totals to the 18 named derived metrics. Every ratio is
zero-guarded: a zero denominator yields 0, never NaN or infinity.

Derived Metrics:
- cpc   = cost / clicks
- cpal  = cost / approvedLeads
- cpoc  = cost / clickOuts
- cpl   = cost / leads
- roi   = revenue / cost * 100
- ctr   = clicks / impressions * 100
- cvr   = approvedLeads / clicks * 100
- sctr  = clickOuts / clicks * 100
- cotal = approvedLeads / clickOuts * 100
- octl  = leads / clickOuts * 100
- epoc  = revenue / clickOuts
- epl   = revenue / leads
- epal  = revenue / approvedLeads
- revenue, clicks, impressions, approvedLeads, clickOuts: raw totals

Classification:
- Rate metrics (significance-testable percentages): ctr, cvr, sctr, cotal, octl, roi
- Lower-is-better metrics (cost metrics): cpc, cpal, cpoc, cpl
- Sample size for the significance test: ctr uses impressions, cotal and
  octl use clickOuts, every other rate metric uses clicks
"""

from typing import Callable, Dict, FrozenSet, List, Union

from adpulse.models import AggregatedTotals, MetricKind, MetricName


# =============================================================================
# Formula Helpers
# =============================================================================


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def _percent(numerator: float, denominator: float) -> float:
    return (numerator / denominator) * 100 if denominator > 0 else 0.0


# =============================================================================
# Formula Table
# =============================================================================

METRIC_FORMULAS: Dict[MetricName, Callable[[AggregatedTotals], float]] = {
    MetricName.CPC: lambda t: _ratio(t.cost, t.clicks),
    MetricName.CPAL: lambda t: _ratio(t.cost, t.approvedLeads),
    MetricName.CPOC: lambda t: _ratio(t.cost, t.clickOuts),
    MetricName.CPL: lambda t: _ratio(t.cost, t.leads),
    MetricName.ROI: lambda t: _percent(t.revenue, t.cost),
    MetricName.REVENUE: lambda t: t.revenue,
    MetricName.CTR: lambda t: _percent(t.clicks, t.impressions),
    MetricName.CVR: lambda t: _percent(t.approvedLeads, t.clicks),
    MetricName.SCTR: lambda t: _percent(t.clickOuts, t.clicks),
    MetricName.COTAL: lambda t: _percent(t.approvedLeads, t.clickOuts),
    MetricName.EPOC: lambda t: _ratio(t.revenue, t.clickOuts),
    MetricName.EPL: lambda t: _ratio(t.revenue, t.leads),
    MetricName.EPAL: lambda t: _ratio(t.revenue, t.approvedLeads),
    MetricName.OCTL: lambda t: _percent(t.leads, t.clickOuts),
    MetricName.CLICKS: lambda t: t.clicks,
    MetricName.IMPRESSIONS: lambda t: t.impressions,
    MetricName.APPROVED_LEADS: lambda t: t.approvedLeads,
    MetricName.CLICK_OUTS: lambda t: t.clickOuts,
}

# Canonical table order; also the stable tie-break for anomaly sorting
METRIC_NAMES: List[MetricName] = list(MetricName)

RATE_METRICS: FrozenSet[MetricName] = frozenset({
    MetricName.CTR,
    MetricName.CVR,
    MetricName.SCTR,
    MetricName.COTAL,
    MetricName.OCTL,
    MetricName.ROI,
})

LOWER_IS_BETTER_METRICS: FrozenSet[MetricName] = frozenset({
    MetricName.CPC,
    MetricName.CPAL,
    MetricName.CPOC,
    MetricName.CPL,
})

# Rate metrics whose trial count is not clicks
_SAMPLE_SIZE_FIELDS: Dict[MetricName, str] = {
    MetricName.CTR: 'impressions',
    MetricName.COTAL: 'clickOuts',
    MetricName.OCTL: 'clickOuts',
}


# =============================================================================
# Public API
# =============================================================================


def resolve_metric(metric_name: Union[MetricName, str]) -> MetricName:
    """
    Normalize a metric name to the MetricName enum.

    Raises:
        ValueError: If the name is not one of the 18 known metrics.
    """
    if isinstance(metric_name, MetricName):
        return metric_name
    try:
        return MetricName(metric_name)
    except ValueError:
        raise ValueError(
            f"Unknown metric '{metric_name}'. Valid metrics are: {[m.value for m in MetricName]}"
        ) from None


def calculate_metric_value(
    metric_name: Union[MetricName, str],
    totals: AggregatedTotals
) -> float:
    """
    Compute one derived metric from aggregated totals.

    Args:
        metric_name: Metric to compute (enum or its string value).
        totals: Aggregated or per-day averaged totals.

    Returns:
        The metric value in metric space (dollars, percentage points or a
        raw count). Returns 0 whenever the formula's denominator is 0.

    Raises:
        ValueError: If metric_name is unknown.

    Example:
        >>> calculate_metric_value("cpc", AggregatedTotals(cost=100.0, clicks=0.0))
        0.0
        >>> calculate_metric_value("ctr", AggregatedTotals(impressions=1000.0, clicks=25.0))
        2.5
    """
    return METRIC_FORMULAS[resolve_metric(metric_name)](totals)


def calculate_all_metric_values(totals: AggregatedTotals) -> Dict[str, float]:
    """Compute all 18 metrics for one set of totals, keyed by metric name."""
    return {
        metric.value: formula(totals)
        for metric, formula in METRIC_FORMULAS.items()
    }


def get_metric_kind(metric_name: Union[MetricName, str]) -> MetricKind:
    """Return RATE for bounded percentage metrics, VALUE for everything else."""
    return MetricKind.RATE if resolve_metric(metric_name) in RATE_METRICS else MetricKind.VALUE


def is_lower_better(metric_name: Union[MetricName, str]) -> bool:
    """True for cost metrics, where a decrease is the favorable direction."""
    return resolve_metric(metric_name) in LOWER_IS_BETTER_METRICS


def get_sample_size(
    metric_name: Union[MetricName, str],
    totals: AggregatedTotals
) -> float:
    """
    Number of trials behind a rate metric.

    ctr is measured per impression, cotal and octl per click-out, the other
    metrics per click.

    Args:
        metric_name: Metric being tested.
        totals: Totals of the period being tested (the current period).

    Returns:
        The trial count taken from totals.
    """
    field = _SAMPLE_SIZE_FIELDS.get(resolve_metric(metric_name), 'clicks')
    return getattr(totals, field)
