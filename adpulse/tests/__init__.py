"""
AdPulse test suite.

Tests are grouped by service:
- test_aggregation: row validation, totals, date split, per-day averaging
- test_metric_formulas: formula table, zero guards, classification
- test_significance: erf / normal CDF kernel and the proportion Z-test
- test_evaluation: change, direction and severity rules
- test_breakdown: dimension filtering, primary driver, caps
- test_anomaly_selection: filtering and severity ordering
- test_analysis: end-to-end analysis runs
- test_daily_kpis: per-date KPI table and significance bands
- test_api: route handlers
"""
