"""
Test suite for the row aggregation service.

The tests verify:
1. Facts are summed across rows, empty input yields zero totals
2. Malformed facts are rejected at the boundary instead of becoming NaN
3. Target-day / baseline split and distinct-date counting
4. Per-day averaging divides by distinct dates, never by row count
5. Grouping preserves first-seen order
"""

from datetime import date

import numpy as np
import pandas as pd
import pydantic
import pytest

from adpulse.models import AggregatedTotals, RawRow
from adpulse.services.aggregation import (
    aggregate_by,
    aggregate_rows,
    average_per_day,
    count_distinct_dates,
    describe_period,
    rows_to_frame,
    split_rows_by_date,
    validate_fact_columns,
)


class TestAggregateRows:
    """Tests for aggregate_rows."""

    def test_sums_every_fact(self, row_factory, target_date):
        """Each fact column is summed into its AggregatedTotals field."""
        rows = [
            row_factory(target_date, impressions=100, clicks=10, cost=5.0, revenue=8.0,
                        lead=3, approved_leads=2, click_out=4),
            row_factory(target_date, impressions=50, clicks=5, cost=2.5, revenue=1.0,
                        lead=1, approved_leads=1, click_out=2),
        ]

        totals = aggregate_rows(rows)

        assert totals == AggregatedTotals(
            impressions=150, clicks=15, cost=7.5, revenue=9.0,
            approvedLeads=3, clickOuts=6, leads=4,
        )

    def test_empty_input_yields_zero_totals(self):
        """No rows is a valid input, not an error."""
        assert aggregate_rows([]) == AggregatedTotals()

    def test_accepts_rawrow_models(self, row_factory, target_date):
        """RawRow instances are aggregated like plain dicts."""
        rows = [RawRow(**row_factory(target_date, clicks=3)), RawRow(**row_factory(target_date, clicks=4))]
        assert aggregate_rows(rows).clicks == 7

    def test_accepts_dataframe(self, row_factory, target_date):
        """A DataFrame with the query layer columns is accepted."""
        df = pd.DataFrame([row_factory(target_date, clicks=2), row_factory(target_date, clicks=5)])
        assert aggregate_rows(df).clicks == 7

    def test_sale_and_approved_sales_are_not_aggregated(self, row_factory, target_date):
        """Only the seven analysis facts feed the totals."""
        totals = aggregate_rows([row_factory(target_date, sale=9, approved_sales=9)])
        assert totals == AggregatedTotals()

    def test_input_is_not_mutated(self, row_factory, target_date):
        """Aggregation never modifies the caller's frame."""
        df = pd.DataFrame([row_factory(target_date, clicks=2)])
        before = df.copy()
        aggregate_rows(df)
        pd.testing.assert_frame_equal(df, before)


class TestMalformedRows:
    """Malformed facts fail fast with a validation error."""

    def test_non_numeric_fact_in_dict_rejected(self, row_factory, target_date):
        """A non-numeric fact raises pydantic's ValidationError."""
        with pytest.raises(pydantic.ValidationError):
            aggregate_rows([row_factory(target_date, clicks='many')])

    def test_negative_fact_rejected(self, row_factory, target_date):
        """Negative counts are invalid."""
        with pytest.raises(ValueError):
            aggregate_rows([row_factory(target_date, clicks=-1)])

    def test_nan_fact_rejected(self, row_factory, target_date):
        """NaN never reaches the formulas."""
        with pytest.raises(ValueError):
            aggregate_rows([row_factory(target_date, cost=float('nan'))])

    def test_dataframe_with_non_numeric_fact_rejected(self, row_factory, target_date):
        """DataFrame input is validated column-wise."""
        df = pd.DataFrame([row_factory(target_date, clicks=1), row_factory(target_date, clicks='x')])
        with pytest.raises(ValueError, match="non-numeric"):
            aggregate_rows(df)

    def test_missing_fact_in_dict_rejected(self):
        """An absent fact is an error, never a silent zero."""
        with pytest.raises(ValueError):
            aggregate_rows([{"stats_date_tz": "2024-12-02", "cost": 100.0}])

    def test_rawrow_requires_every_aggregated_fact(self, row_factory, target_date):
        """Each of the seven aggregated facts is required on its own."""
        for fact in ("impressions", "clicks", "cost", "revenue", "lead", "approved_leads", "click_out"):
            data = row_factory(target_date)
            del data[fact]
            with pytest.raises(pydantic.ValidationError):
                RawRow(**data)

    def test_informational_facts_default_to_zero(self, row_factory, target_date):
        """sale and approved_sales are optional."""
        row = RawRow(**row_factory(target_date))

        assert row.sale == 0
        assert row.approved_sales == 0

    def test_validate_fact_columns_reports_row_number(self, row_factory, target_date):
        """The first invalid row is reported 1-based."""
        df = pd.DataFrame([
            row_factory(target_date, clicks=1),
            row_factory(target_date, clicks=-3),
        ])

        errors = validate_fact_columns(df)

        assert len(errors) == 1
        assert errors[0].field == 'clicks'
        assert errors[0].row_number == 2

    def test_validate_fact_columns_reports_missing_columns(self):
        """Missing fact columns are reported by name."""
        df = pd.DataFrame({'stats_date_tz': ['2024-12-02'], 'clicks': [1]})

        missing = {error.field for error in validate_fact_columns(df)}

        assert 'impressions' in missing
        assert 'click_out' in missing
        assert 'clicks' not in missing

    def test_validate_fact_columns_flags_infinite_values(self, row_factory, target_date):
        """Infinite values count as invalid numbers."""
        df = pd.DataFrame([row_factory(target_date, cost=np.inf)])
        assert [error.field for error in validate_fact_columns(df)] == ['cost']


class TestSplitAndCount:
    """Tests for split_rows_by_date and count_distinct_dates."""

    def test_split_separates_target_day(self, row_factory, target_date, baseline_dates):
        """Rows on the target day are current, every other row is baseline."""
        rows = [row_factory(target_date, clicks=1)] + [row_factory(d, clicks=2) for d in baseline_dates]

        current, baseline = split_rows_by_date(rows, target_date)

        assert len(current) == 1
        assert len(baseline) == len(baseline_dates)
        assert set(baseline['stats_date_tz']) == set(baseline_dates)

    def test_distinct_dates_ignore_row_multiplicity(self, row_factory, baseline_dates):
        """Many rows per day still count each day once."""
        rows = [row_factory(d, device=device) for d in baseline_dates[:3] for device in ('mobile', 'desktop', 'tablet')]
        assert count_distinct_dates(rows) == 3

    def test_distinct_dates_of_empty_input(self):
        """No rows means zero distinct dates."""
        assert count_distinct_dates([]) == 0

    def test_describe_period(self, row_factory, baseline_dates):
        """The period label spans the first to the last date."""
        df = rows_to_frame([row_factory(d) for d in reversed(baseline_dates)])
        assert describe_period(df) == "2024-11-25 to 2024-12-01"

    def test_describe_period_of_empty_frame(self):
        """An empty window has no label."""
        assert describe_period(rows_to_frame([])) is None


class TestAveragePerDay:
    """Tests for average_per_day."""

    def test_divides_by_distinct_days_not_rows(self, row_factory, baseline_dates):
        """Three rows per day over two days average over 2, not 6."""
        rows = [
            row_factory(day, device=device, clicks=10)
            for day in baseline_dates[:2]
            for device in ('mobile', 'desktop', 'tablet')
        ]

        averaged = average_per_day(aggregate_rows(rows), count_distinct_dates(rows))

        assert averaged.clicks == 30

    def test_zero_day_count_rejected(self):
        """The caller must supply at least one day."""
        with pytest.raises(ValueError, match="day count"):
            average_per_day(AggregatedTotals(clicks=10), 0)

    def test_zero_totals_stay_zero(self):
        """Averaging empty totals over the D=1 fallback keeps zeros."""
        assert average_per_day(AggregatedTotals(), 1) == AggregatedTotals()


class TestAggregateBy:
    """Tests for aggregate_by."""

    def test_groups_in_first_seen_order(self, row_factory, target_date):
        """Group order follows first appearance, not alphabetical order."""
        df = rows_to_frame([
            row_factory(target_date, device='tablet', clicks=1),
            row_factory(target_date, device='desktop', clicks=2),
            row_factory(target_date, device='tablet', clicks=3),
        ])

        groups = aggregate_by(df, 'device')

        assert list(groups) == ['tablet', 'desktop']
        assert groups['tablet'].clicks == 4
        assert groups['desktop'].clicks == 2

    def test_dataframe_dimension_values_are_stripped(self, row_factory, target_date):
        """DataFrame input is stripped like validated RawRow input."""
        df = pd.DataFrame([
            row_factory(target_date, device="mobile ", clicks=1),
            row_factory(target_date, device=" mobile", clicks=2),
            row_factory(target_date, device=None, clicks=4),
        ])

        frame = rows_to_frame(df)

        assert list(frame["device"].iloc[:2]) == ["mobile", "mobile"]
        assert frame["device"].iloc[2] is None
        assert aggregate_by(frame, "device")["mobile"].clicks == 3
        assert df["device"].iloc[0] == "mobile "

    def test_null_keys_dropped(self, row_factory, target_date):
        """Rows without a value for the column are not grouped."""
        df = rows_to_frame([
            row_factory(target_date, device=None, clicks=1),
            row_factory(target_date, device='mobile', clicks=2),
        ])
        assert list(aggregate_by(df, 'device')) == ['mobile']

    def test_empty_frame(self):
        """No rows, no groups."""
        assert aggregate_by(rows_to_frame([]), 'device') == {}

    def test_groups_by_date(self, row_factory, baseline_dates):
        """The date column can be used as a grouping key."""
        df = rows_to_frame([row_factory(d, clicks=1) for d in baseline_dates])
        groups = aggregate_by(df, 'stats_date_tz')
        assert list(groups) == baseline_dates
        assert all(isinstance(key, date) for key in groups)
