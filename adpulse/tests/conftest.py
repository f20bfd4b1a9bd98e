"""
Pytest Configuration and Shared Fixtures for AdPulse Tests.

This module provides fixtures and configuration for the engine tests:
- Async test execution with pytest-asyncio (route handlers are awaited directly)
- Row factories producing RawRow-shaped dicts for the query layer columns
- The reference end-to-end totals (CVR critical / ROI warning scenario)
- A multi-dimension row window with a known primary driver
- Settings isolation (the lru_cache singleton is cleared around each test)

Dependencies:
- pytest
- pytest-asyncio
- pandas
"""

from datetime import date, timedelta
from typing import Any, Callable, Dict, Generator, List

import pytest

from adpulse.core.config import get_settings
from adpulse.models import AggregatedTotals


# ============================================================
# PYTEST PLUGINS CONFIGURATION
# ============================================================

pytest_plugins: List[str] = ['pytest_asyncio']


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Register custom markers.

    - behavior_flag: documents a deliberate product behavior that may change
      (e.g. severity ignoring statistical significance)
    """
    config.addinivalue_line(
        'markers',
        'behavior_flag: marks tests pinning a debatable product behavior'
    )


# ============================================================
# SETTINGS ISOLATION
# ============================================================

@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the cached Settings so environment changes never leak between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================
# DATES
# ============================================================

TARGET_DATE = date(2024, 12, 2)


@pytest.fixture
def target_date() -> date:
    """Target day used across the suite."""
    return TARGET_DATE


@pytest.fixture
def baseline_dates() -> List[date]:
    """Seven days immediately preceding the target day, oldest first."""
    return [TARGET_DATE - timedelta(days=offset) for offset in range(7, 0, -1)]


# ============================================================
# ROW FACTORIES
# ============================================================

def make_row(stats_date: date, **overrides: Any) -> Dict[str, Any]:
    """
    Build one fact row dict with the query layer's column names.

    Every fact defaults to 0 and every dimension to a valid value, so tests
    only spell out what they care about.

    Example:
        >>> make_row(date(2024, 12, 2), device="mobile", clicks=10)["clicks"]
        10
    """
    row: Dict[str, Any] = {
        'stats_date_tz': stats_date.isoformat(),
        'account_name': 'Acme Search',
        'device': 'desktop',
        'campaign_quality': 'high',
        'page': 'compare',
        'impressions': 0,
        'clicks': 0,
        'cost': 0.0,
        'revenue': 0.0,
        'lead': 0,
        'approved_leads': 0,
        'click_out': 0,
    }
    row.update(overrides)
    return row


@pytest.fixture
def row_factory() -> Callable[..., Dict[str, Any]]:
    """Expose make_row as a fixture."""
    return make_row


# ============================================================
# END-TO-END REFERENCE SCENARIO
# ============================================================

@pytest.fixture
def scenario_current_totals() -> AggregatedTotals:
    """Target-day totals of the reference scenario."""
    return AggregatedTotals(
        impressions=169344,
        clicks=5419,
        cost=12740,
        revenue=12500,
        approvedLeads=694,
        clickOuts=2471,
        leads=720,
    )


@pytest.fixture
def scenario_baseline_totals() -> AggregatedTotals:
    """Per-day baseline totals of the reference scenario."""
    return AggregatedTotals(
        impressions=167742,
        clicks=5200,
        cost=11388,
        revenue=11800,
        approvedLeads=744,
        clickOuts=2402,
        leads=750,
    )


def totals_to_row(stats_date: date, totals: AggregatedTotals, **dimensions: Any) -> Dict[str, Any]:
    """Express an AggregatedTotals as a single fact row."""
    return make_row(
        stats_date,
        impressions=totals.impressions,
        clicks=totals.clicks,
        cost=totals.cost,
        revenue=totals.revenue,
        lead=totals.leads,
        approved_leads=totals.approvedLeads,
        click_out=totals.clickOuts,
        **dimensions,
    )


@pytest.fixture
def scenario_rows(
    target_date: date,
    baseline_dates: List[date],
    scenario_current_totals: AggregatedTotals,
    scenario_baseline_totals: AggregatedTotals,
) -> List[Dict[str, Any]]:
    """
    Rows reproducing the reference scenario.

    The target day is a single row; the baseline is the per-day totals
    repeated on each of the seven baseline days.
    """
    rows = [totals_to_row(target_date, scenario_current_totals)]
    rows.extend(totals_to_row(day, scenario_baseline_totals) for day in baseline_dates)
    return rows


# ============================================================
# DEVICE-DRIVEN WINDOW
# ============================================================

@pytest.fixture
def device_driven_rows(target_date: date, baseline_dates: List[date]) -> List[Dict[str, Any]]:
    """
    Window where mobile conversion collapses on the target day.

    Per baseline day:
        desktop: 2000 clicks, 300 approved leads (cvr 15%)
        mobile:  2000 clicks, 300 approved leads (cvr 15%)
    Target day:
        desktop: 2000 clicks, 300 approved leads (cvr 15%, unchanged)
        mobile:  2000 clicks, 150 approved leads (cvr 7.5%, -50%)

    Plus one "Unknown" device row and one blank device row on every day that
    must never show up as a breakdown value.
    """
    def day_rows(day: date, mobile_leads: int) -> List[Dict[str, Any]]:
        return [
            make_row(day, device='desktop', impressions=40000, clicks=2000,
                     cost=3000.0, revenue=4500.0, lead=320, approved_leads=300, click_out=900),
            make_row(day, device='mobile', impressions=40000, clicks=2000,
                     cost=3000.0, revenue=4500.0 * mobile_leads / 300, lead=320,
                     approved_leads=mobile_leads, click_out=900),
            make_row(day, device='Unknown', impressions=500, clicks=40,
                     cost=60.0, revenue=10.0, lead=2, approved_leads=1, click_out=10),
            make_row(day, device='', impressions=500, clicks=40,
                     cost=60.0, revenue=90.0, lead=9, approved_leads=9, click_out=10),
        ]

    rows: List[Dict[str, Any]] = []
    for day in baseline_dates:
        rows.extend(day_rows(day, 300))
    rows.extend(day_rows(target_date, 150))
    return rows
