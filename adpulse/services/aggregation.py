"""
Row aggregation service for the AdPulse anomaly engine.

This module reduces raw fact rows into period totals and prepares the two
totals every analysis compares: the target day and the per-day baseline.

Key Functions:
- rows_to_frame: Validate input rows and load them into a pandas DataFrame
- validate_fact_columns: Report missing, non-numeric or negative fact columns
- aggregate_rows: Sum the numeric facts of a row set into AggregatedTotals
- aggregate_by: Sum facts per distinct value of one column, in first-seen order
- split_rows_by_date: Separate target-day rows from baseline rows
- count_distinct_dates: Number of calendar days represented in a row set
- average_per_day: Divide baseline totals by the distinct-day count
- describe_period: "first to last" label for a row set's date range

Baseline Averaging:
    The baseline window usually holds many rows per day (one per device,
    account, page...). Averaging therefore divides by the number of DISTINCT
    dates, never by the row count, and the same count is reused for every
    metric and every dimension value within one analysis run.

Accepted Inputs:
    Every function taking rows accepts a sequence of RawRow models, a
    sequence of plain mappings (validated through RawRow) or a DataFrame
    (validated column-wise with pandas).
"""

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from adpulse.models import AggregatedTotals, RawRow, ValidationError

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DATE_COLUMN: str = 'stats_date_tz'

# Row column -> AggregatedTotals field
FACT_COLUMNS: Dict[str, str] = {
    'impressions': 'impressions',
    'clicks': 'clicks',
    'cost': 'cost',
    'revenue': 'revenue',
    'approved_leads': 'approvedLeads',
    'click_out': 'clickOuts',
    'lead': 'leads',
}

ROW_COLUMNS: List[str] = list(RawRow.model_fields.keys())

# Free-text dimension columns, stripped the same way RawRow strips them
DIMENSION_COLUMNS: List[str] = [
    col for col in ROW_COLUMNS
    if col != DATE_COLUMN and RawRow.model_fields[col].annotation is not float
]

RowsInput = Union[pd.DataFrame, Sequence[Union[RawRow, Mapping[str, Any]]]]


# =============================================================================
# Validation
# =============================================================================


def validate_fact_columns(df: pd.DataFrame) -> List[ValidationError]:
    """
    Validate the fact and date columns of a row DataFrame.

    Checks performed:
    - The date column and every aggregated fact column are present
    - Fact values are numeric and finite (no NaN / inf, no null)
    - Fact values are non-negative
    - Dates parse as calendar dates

    Args:
        df: DataFrame holding one row per fact record.

    Returns:
        List of ValidationError records; empty when the frame is valid.
    """
    errors: List[ValidationError] = []

    required = [DATE_COLUMN, *FACT_COLUMNS.keys()]
    missing = [col for col in required if col not in df.columns]
    for col in missing:
        errors.append(ValidationError(
            field=col,
            message=f"Missing required column '{col}'"
        ))

    for col in FACT_COLUMNS:
        if col in missing:
            continue

        numeric = pd.to_numeric(df[col], errors='coerce')
        invalid_mask = numeric.isna() | ~np.isfinite(numeric.fillna(0.0))
        invalid_count = int(invalid_mask.sum())
        if invalid_count > 0:
            invalid_indices = df[invalid_mask].index.tolist()[:5]
            errors.append(ValidationError(
                field=col,
                message=f"Found {invalid_count} non-numeric values in column '{col}'. First invalid rows at indices: {invalid_indices}",
                # Convert 0-based DataFrame index to 1-based row number
                row_number=_first_row_number(invalid_mask)
            ))
            continue

        negative_mask = numeric < 0
        negative_count = int(negative_mask.sum())
        if negative_count > 0:
            negative_indices = df[negative_mask].index.tolist()[:5]
            errors.append(ValidationError(
                field=col,
                message=f"Found {negative_count} negative values in column '{col}'. First invalid rows at indices: {negative_indices}",
                row_number=_first_row_number(negative_mask)
            ))

    if DATE_COLUMN not in missing:
        parsed = pd.to_datetime(df[DATE_COLUMN], errors='coerce')
        invalid_mask = parsed.isna()
        invalid_count = int(invalid_mask.sum())
        if invalid_count > 0:
            invalid_indices = df[invalid_mask].index.tolist()[:5]
            errors.append(ValidationError(
                field=DATE_COLUMN,
                message=f"Found {invalid_count} unparseable dates in column '{DATE_COLUMN}'. First invalid rows at indices: {invalid_indices}",
                row_number=_first_row_number(invalid_mask)
            ))

    return errors


def _first_row_number(mask: pd.Series) -> Optional[int]:
    positions = np.flatnonzero(mask.to_numpy())
    if len(positions) == 0:
        return None
    return int(positions[0]) + 1


def rows_to_frame(rows: RowsInput) -> pd.DataFrame:
    """
    Load rows into a validated DataFrame.

    Sequence items that are not RawRow instances go through RawRow
    validation, so a non-numeric or negative fact raises
    pydantic.ValidationError (a ValueError subclass). DataFrame input is
    checked with validate_fact_columns.

    Args:
        rows: RawRow models, mappings or a DataFrame.

    Returns:
        A new DataFrame with float fact columns, stripped dimension strings and `datetime.date` values in
        the date column. The input is never modified.

    Raises:
        ValueError: If any row fails validation.
    """
    if isinstance(rows, pd.DataFrame):
        errors = validate_fact_columns(rows)
        if errors:
            summary = '; '.join(error.message for error in errors)
            raise ValueError(f"Invalid fact rows: {summary}")
        df = rows.copy()
    else:
        if len(rows) == 0:
            return pd.DataFrame({col: pd.Series(dtype=float if col in FACT_COLUMNS else object) for col in ROW_COLUMNS})
        records = [
            (row if isinstance(row, RawRow) else RawRow.model_validate(row)).model_dump()
            for row in rows
        ]
        df = pd.DataFrame.from_records(records, columns=ROW_COLUMNS)

    for col in FACT_COLUMNS:
        df[col] = pd.to_numeric(df[col]).astype(float)
    for col in DIMENSION_COLUMNS:
        if col in df.columns:
            df[col] = df[col].map(lambda v: v.strip() if isinstance(v, str) else v)
    if not df.empty:
        df[DATE_COLUMN] = pd.to_datetime(df[DATE_COLUMN]).dt.date

    return df


# =============================================================================
# Aggregation
# =============================================================================


def _totals_from_sums(sums: Mapping[str, float]) -> AggregatedTotals:
    return AggregatedTotals(**{
        field: float(sums.get(col, 0.0))
        for col, field in FACT_COLUMNS.items()
    })


def aggregate_rows(rows: RowsInput) -> AggregatedTotals:
    """
    Sum every numeric fact across a set of rows.

    No filtering happens here: choosing which rows belong to the target day
    or the baseline window is the caller's job.

    Args:
        rows: RawRow models, mappings or a DataFrame. May be empty.

    Returns:
        AggregatedTotals with the summed facts. Empty input yields all zeros,
        which is a valid result rather than an error.

    Raises:
        ValueError: If the rows contain malformed facts.

    Example:
        >>> totals = aggregate_rows([
        ...     {"stats_date_tz": "2024-12-02", "impressions": 0, "clicks": 10, "cost": 25.0,
        ...      "revenue": 0, "lead": 0, "approved_leads": 0, "click_out": 0},
        ...     {"stats_date_tz": "2024-12-02", "impressions": 0, "clicks": 5, "cost": 10.0,
        ...      "revenue": 0, "lead": 0, "approved_leads": 0, "click_out": 0},
        ... ])
        >>> totals.clicks, totals.cost
        (15.0, 35.0)
    """
    df = rows_to_frame(rows)
    if df.empty:
        return AggregatedTotals()
    return _totals_from_sums(df[list(FACT_COLUMNS)].sum().to_dict())


def aggregate_by(df: pd.DataFrame, column: str) -> Dict[Any, AggregatedTotals]:
    """
    Sum facts per distinct value of `column`.

    Groups are returned in order of first appearance in `df`, which is the
    tie-break order used when ranking breakdowns. Null keys are dropped.

    Args:
        df: Frame produced by rows_to_frame.
        column: Column to group on.

    Returns:
        Dict mapping each distinct value to its AggregatedTotals.
    """
    if df.empty or column not in df.columns:
        return {}

    grouped = df.groupby(column, sort=False, dropna=True)[list(FACT_COLUMNS)].sum()
    return {
        key: _totals_from_sums(sums)
        for key, sums in grouped.to_dict(orient='index').items()
    }


# =============================================================================
# Target / Baseline Preparation
# =============================================================================


def split_rows_by_date(
    rows: RowsInput,
    target_date: date
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split rows into target-day rows and baseline rows.

    Args:
        rows: All rows of the analysis window.
        target_date: Day under analysis.

    Returns:
        Tuple of (current_rows, baseline_rows). Baseline is every row not
        dated on the target day.
    """
    df = rows_to_frame(rows)
    if df.empty:
        return df, df.copy()

    is_target = df[DATE_COLUMN] == target_date
    logger.debug(f"Split {len(df)} rows: {int(is_target.sum())} on {target_date.isoformat()}")
    return df[is_target].copy(), df[~is_target].copy()


def count_distinct_dates(rows: RowsInput) -> int:
    """
    Count distinct calendar dates in a row set.

    Args:
        rows: Baseline rows (any number per day).

    Returns:
        Number of distinct dates; 0 for empty input.
    """
    df = rows_to_frame(rows)
    if df.empty:
        return 0
    return int(df[DATE_COLUMN].nunique())


def average_per_day(totals: AggregatedTotals, day_count: int) -> AggregatedTotals:
    """
    Convert window totals into a per-day average.

    Args:
        totals: Totals summed across the whole baseline window.
        day_count: Distinct dates in the window. Must be at least 1; callers
            without baseline rows pass 1 so the all-zero totals stay zero.

    Returns:
        AggregatedTotals with every field divided by day_count.

    Raises:
        ValueError: If day_count < 1.
    """
    if day_count < 1:
        raise ValueError(f"Baseline day count must be >= 1, got {day_count}")

    return AggregatedTotals(**{
        field: value / day_count
        for field, value in totals.model_dump().items()
    })


def describe_period(rows: pd.DataFrame) -> Optional[str]:
    """Return "YYYY-MM-DD to YYYY-MM-DD" for the rows' date span, or None."""
    if rows.empty:
        return None
    dates = rows[DATE_COLUMN]
    return f"{min(dates).isoformat()} to {max(dates).isoformat()}"
