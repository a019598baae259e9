"""
Tests for ledger_core.buckets module.
"""
from datetime import date

from conftest import item, local_ms, make_record
from ledger_core.buckets import (
    build_time_buckets,
    build_time_series,
    day_label,
    init_buckets,
    month_label,
    monthly_trend,
)
from ledger_core.filters import DateRange
from ledger_core.models import Sale


class TestInitBuckets:
    """Tests for bucket pre-creation."""

    def test_single_day_is_hourly(self):
        """A one-day window gets 24 hourly buckets."""
        buckets = init_buckets(DateRange(date(2026, 10, 17), date(2026, 10, 17)))
        assert len(buckets) == 24
        assert "00:00" in buckets
        assert "23:00" in buckets

    def test_multi_day_is_daily(self):
        """N days after the start produce N + 1 buckets."""
        buckets = init_buckets(DateRange(date(2026, 10, 1), date(2026, 10, 11)))
        assert len(buckets) == 11
        assert "2026-10-01" in buckets
        assert "2026-10-11" in buckets


class TestTimeSeries:
    """Tests for build_time_series."""

    def test_hourly(self, sample_sales, tz):
        """A midnight sale lands in the 00:00 bucket."""
        window = DateRange(date(2026, 10, 17), date(2026, 10, 17))
        series = build_time_series([s for s in sample_sales if s.id == "s4"], window, tz)
        assert series.hourly
        assert series.labels[0] == "00:00"
        assert series.revenue[0] == 800
        assert sum(series.revenue) == 800

    def test_daily_with_zero_days(self, sample_sales, tz):
        """Days without sales are present with zero sums."""
        window = DateRange(date(2026, 10, 1), date(2026, 10, 17))
        sales = [s for s in sample_sales if s.id in ("s1", "s2", "s4")]
        series = build_time_series(sales, window, tz)
        assert not series.hourly
        assert len(series.keys) == 17
        assert series.keys == sorted(series.keys)
        assert series.labels[4] == "Oct 5"
        assert series.revenue[4] == 1000
        assert series.profit[9] == 400
        assert series.revenue[1] == 0

    def test_sales_outside_window_dropped(self, sample_sales, tz):
        """Sales with no matching bucket are not counted."""
        window = DateRange(date(2026, 10, 1), date(2026, 10, 3))
        buckets = build_time_buckets(sample_sales, window, tz)
        assert sum(b.revenue for b in buckets.values()) == 0

    def test_bucket_sums_match_totals(self, sample_sales, tz):
        """A window covering every sale keeps revenue intact."""
        window = DateRange(date(2026, 9, 20), date(2026, 10, 17))
        dated = [s for s in sample_sales if s.created_at is not None]
        series = build_time_series(dated, window, tz)
        assert sum(series.revenue) == sum(s.finance.total_sell for s in dated)


class TestMonthlyTrend:
    """Tests for monthly_trend."""

    def test_twelve_months_ending_at_reference(self, sample_sales, reference_date, tz):
        """The trend ends at the reference month."""
        trend = monthly_trend(sample_sales, 12, reference_date, tz)
        assert len(trend.keys) == 12
        assert trend.keys[0] == "2025-11"
        assert trend.keys[-1] == "2026-10"
        assert trend.labels[-1] == "Oct 2026"
        assert trend.profit[-1] == 1200
        assert trend.profit[-2] == 200

    def test_old_sales_outside_range(self, reference_date, tz):
        """Sales older than the trend range are ignored."""
        old = Sale.from_dict(make_record("old", local_ms(2024, 1, 1), items=[item("X", sell=10)]))
        trend = monthly_trend([old], 12, reference_date, tz)
        assert sum(trend.revenue) == 0


class TestLabels:
    def test_day_label(self):
        """Day labels are short month and day."""
        assert day_label(date(2026, 10, 5)) == "Oct 5"

    def test_month_label(self):
        assert month_label(date(2026, 1, 1)) == "Jan 2026"
