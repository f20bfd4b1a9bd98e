"""
AdPulse - ad-metrics anomaly detection backend.

Compares a target day's advertising performance against a per-day baseline,
flags anomalous metrics by severity and attributes each anomaly to the
dimension slices (device, account, campaign quality, page) that drove it.
"""

__version__ = "1.0.0"
