"""Tests for time-bucket aggregation.

Tests cover:
- Window boundaries: week/month/year, month-end clamping, leap years
- Zero-fill: series length equals calendar units in the window
- Refund separation: refunded sales never add to gross amount
- Sum property: bucket amount + refund amount equals in-window sales
- Losses, window totals (net sales) and the unwindowed daily log
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from inventory_pro.time_buckets import (
    ReportPeriod,
    aggregate_losses,
    aggregate_sales,
    bucket_keys,
    daily_sales_log,
    parse_period,
    window_start,
    window_totals,
)

NOW = date(2024, 1, 2)


def _sale(day: str, amount: float, status: str = "completed", **extra) -> dict:
    return {"date": day, "amount": amount, "status": status, **extra}


def _by_key(buckets):
    return {b.key: b for b in buckets}


# ---------------------------------------------------------------------------
# Windows and keys
# ---------------------------------------------------------------------------


class TestWindow:
    def test_week_is_seven_days_back(self):
        assert window_start(date(2024, 1, 10), "week") == date(2024, 1, 3)

    def test_month_clamps_to_month_end(self):
        assert window_start(date(2024, 3, 31), "month") == date(2024, 2, 29)
        assert window_start(date(2023, 3, 31), "month") == date(2023, 2, 28)

    def test_year_from_leap_day(self):
        assert window_start(date(2024, 2, 29), "year") == date(2023, 2, 28)

    def test_datetime_now_is_truncated(self):
        assert window_start(datetime(2024, 1, 10, 18, 45), ReportPeriod.WEEK) == date(2024, 1, 3)

    def test_parse_period(self):
        assert parse_period("WEEK") is ReportPeriod.WEEK
        assert parse_period(" year ") is ReportPeriod.YEAR
        assert parse_period("fortnight") is ReportPeriod.MONTH
        assert parse_period(None, default=ReportPeriod.WEEK) is ReportPeriod.WEEK


class TestBucketKeys:
    def test_week_has_eight_daily_keys(self):
        keys = bucket_keys(NOW, "week")
        assert len(keys) == 8
        assert keys[0] == "2023-12-26"
        assert keys[-1] == "2024-01-02"

    def test_month_window_across_leap_february(self):
        keys = bucket_keys(date(2024, 3, 31), "month")
        # Feb 29 .. Mar 31 inclusive
        assert len(keys) == 32
        assert keys[0] == "2024-02-29"

    def test_year_window_is_monthly(self):
        keys = bucket_keys(date(2024, 6, 15), "year")
        assert len(keys) == 13
        assert keys[0] == "2023-06"
        assert keys[-1] == "2024-06"

    @pytest.mark.parametrize("period", list(ReportPeriod))
    def test_keys_are_sorted_and_unique(self, period):
        keys = bucket_keys(date(2024, 5, 20), period)
        assert keys == sorted(set(keys))

    def test_daily_keys_are_contiguous(self):
        keys = bucket_keys(date(2024, 3, 10), "month")
        days = [date.fromisoformat(k) for k in keys]
        assert all(b - a == timedelta(days=1) for a, b in zip(days, days[1:]))


# ---------------------------------------------------------------------------
# Sales aggregation
# ---------------------------------------------------------------------------


class TestAggregateSales:
    def test_refund_scenario(self):
        sales = [
            _sale("2024-01-01", 100),
            _sale("2024-01-02", 50, status="refunded"),
        ]
        buckets = _by_key(aggregate_sales(sales, "week", NOW))

        assert buckets["2024-01-01"].amount == 100
        assert buckets["2024-01-01"].refund_amount == 0
        assert buckets["2024-01-02"].amount == 0
        assert buckets["2024-01-02"].refund_amount == 50
        assert buckets["2024-01-02"].refund_count == 1

    @pytest.mark.parametrize("sales", [[], None, "junk", {"id": 1}])
    def test_empty_input_is_zero_filled(self, sales):
        buckets = aggregate_sales(sales, "week", NOW)
        assert len(buckets) == 8
        assert all(b.amount == 0 and b.refund_amount == 0 for b in buckets)

    @pytest.mark.parametrize(
        "period,now,expected",
        [
            ("week", date(2024, 1, 2), 8),
            ("month", date(2024, 3, 31), 32),
            ("month", date(2023, 7, 15), 31),
            ("year", date(2024, 6, 15), 13),
        ],
    )
    def test_length_equals_calendar_units(self, period, now, expected):
        sales = [_sale(now.isoformat(), 10)]
        assert len(aggregate_sales(sales, period, now)) == expected

    def test_window_sum_property(self):
        sales = [
            _sale("2023-12-20", 999),  # before the window
            _sale("2023-12-26", 10),
            _sale("2023-12-31", 20, status="REFUNDED"),
            _sale("2024-01-02", 30),
            _sale("2024-01-03", 999),  # after now
            _sale("not a date", 999),
        ]
        buckets = aggregate_sales(sales, "week", NOW)
        total = sum(b.amount + b.refund_amount for b in buckets)
        assert total == 60

    def test_transactions_and_items(self):
        sales = [
            _sale("2024-01-01", 10, items=[{"productId": "a", "quantity": 2}]),
            _sale("2024-01-01", 5, items=[{"productId": "b", "quantity": 1}]),
            _sale("2024-01-01", 7, status="refunded", items=[{"productId": "a", "quantity": 9}]),
        ]
        bucket = _by_key(aggregate_sales(sales, "week", NOW))["2024-01-01"]
        assert bucket.transactions == 2
        assert bucket.items == 3
        assert bucket.amount == 15

    def test_year_groups_by_month(self):
        sales = [_sale("2024-05-01", 10), _sale("2024-05-31", 15), _sale("2024-04-30", 1)]
        buckets = _by_key(aggregate_sales(sales, "year", date(2024, 6, 15)))
        assert buckets["2024-05"].amount == 25
        assert buckets["2024-04"].amount == 1

    def test_aware_timestamp_bucketed_in_utc(self):
        eastern = timezone(timedelta(hours=-5))
        sales = [{"id": 1, "amount": 10, "timestamp": datetime(2024, 1, 1, 22, 0, tzinfo=eastern)}]
        buckets = _by_key(aggregate_sales(sales, "week", NOW))
        assert buckets["2024-01-02"].amount == 10
        assert buckets["2024-01-01"].amount == 0

    def test_idempotent(self):
        sales = [_sale("2024-01-01", 100), _sale("2024-01-02", 50, status="refunded")]
        assert aggregate_sales(sales, "week", NOW) == aggregate_sales(sales, "week", NOW)


# ---------------------------------------------------------------------------
# Losses, totals and the daily log
# ---------------------------------------------------------------------------


class TestAggregateLosses:
    def test_value_and_incident_count(self):
        losses = [
            {"id": 1, "date": "2024-01-01", "value": 4.5, "quantity": 2},
            {"id": 2, "date": "2024-01-01", "value": "1.50", "quantity": 1},
            {"id": 3, "date": "2023-01-01", "value": 100},
        ]
        buckets = _by_key(aggregate_losses(losses, "week", NOW))
        assert buckets["2024-01-01"].amount == 6.0
        assert buckets["2024-01-01"].transactions == 2
        assert buckets["2024-01-01"].items == 3
        assert sum(b.amount for b in buckets.values()) == 6.0

    def test_empty_is_zero_filled(self):
        assert len(aggregate_losses(None, "week", NOW)) == 8


class TestWindowTotals:
    def test_net_sales_nets_refunds_from_same_window(self):
        sales = [
            _sale("2024-01-01", 100),
            _sale("2024-01-02", 30, status="refunded"),
            _sale("2023-06-01", 500, status="refunded"),  # outside the window
        ]
        totals = window_totals(sales, "week", NOW)
        assert totals.gross_sales == 100
        assert totals.refunds == 30
        assert totals.net_sales == 70
        assert totals.transactions == 1
        assert totals.refund_count == 1
        assert totals.start == "2023-12-26"
        assert totals.end == "2024-01-02"

    def test_empty(self):
        totals = window_totals([], "month", NOW)
        assert totals.gross_sales == 0
        assert totals.net_sales == 0

    def test_unrepresentable_amounts_count_as_zero(self):
        sales = [
            _sale("2024-01-01", 10**400),
            _sale("2024-01-02", 5),
            _sale("2024-01-02", float("inf"), status="refunded"),
        ]
        totals = window_totals(sales, "week", NOW)
        assert totals.gross_sales == 5
        assert totals.transactions == 2
        assert totals.refunds == 0
        assert totals.refund_count == 1


class TestDailySalesLog:
    def test_only_days_with_sales(self):
        sales = [
            _sale("2024-01-05", 10),
            _sale("2023-11-01", 5),
            _sale("2024-01-05", 2, status="refunded"),
            _sale("bad", 1),
        ]
        log = daily_sales_log(sales)
        assert [b.key for b in log] == ["2023-11-01", "2024-01-05"]
        assert log[1].amount == 10
        assert log[1].refund_amount == 2

    def test_empty(self):
        assert daily_sales_log([]) == []
