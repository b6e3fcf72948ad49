"""Time-bucket aggregation for sales and loss trend series.

Groups records into calendar buckets over a reporting window that ends at
an injected ``now``:

    week  : daily buckets over [now - 7 days, now]
    month : daily buckets over [now - 1 calendar month, now]
    year  : monthly buckets over [now - 1 year, now]

Every bucket in the window is pre-seeded with zeros, so the series has no
gaps and an empty input still yields a full axis for the chart. Keys are
zero-padded ISO strings (``2024-01-05`` or ``2024-01``) and therefore sort
correctly as plain strings.

Refunded sales feed the refund accumulators only; they never add to the
gross ``amount`` of a bucket.
"""

from __future__ import annotations

import calendar
import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from .models import AggregatedBucket, LossRecord, SaleRecord, SalesTotals
from .normalizer import normalize_losses, normalize_sales, to_utc_date

logger = logging.getLogger("inventory_pro.time_buckets")


class ReportPeriod(str, Enum):
    """Trend window requested by the dashboard."""

    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @property
    def monthly(self) -> bool:
        return self is ReportPeriod.YEAR


def parse_period(value: Any, default: ReportPeriod = ReportPeriod.MONTH) -> ReportPeriod:
    if isinstance(value, ReportPeriod):
        return value
    try:
        return ReportPeriod(str(value).strip().lower())
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------


def as_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return to_utc_date(value)
    return value


def _shift_months(day: date, months: int) -> date:
    """Move ``day`` by whole calendar months, clamping to the month's end."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def window_start(now: date | datetime, period: ReportPeriod | str) -> date:
    """First calendar day of the reporting window ending at ``now``."""
    period = parse_period(period)
    today = as_day(now)
    if period is ReportPeriod.WEEK:
        return today - timedelta(days=7)
    if period is ReportPeriod.MONTH:
        return _shift_months(today, -1)
    return _shift_months(today, -12)


def bucket_key(day: date, period: ReportPeriod | str) -> str:
    if parse_period(period).monthly:
        return f"{day.year:04d}-{day.month:02d}"
    return day.isoformat()


def bucket_keys(now: date | datetime, period: ReportPeriod | str) -> list[str]:
    """Every bucket key in the window, ascending and contiguous."""
    period = parse_period(period)
    end = as_day(now)
    current = window_start(end, period)
    keys: list[str] = []
    if period.monthly:
        current = current.replace(day=1)
        while current <= end:
            keys.append(bucket_key(current, period))
            current = _shift_months(current, 1)
    else:
        while current <= end:
            keys.append(current.isoformat())
            current += timedelta(days=1)
    return keys


def _in_window(day: date, start: date, end: date) -> bool:
    return start <= day <= end


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class _Accumulator:
    __slots__ = ("amount", "refund_amount", "transactions", "refund_count", "items")

    def __init__(self) -> None:
        self.amount = 0.0
        self.refund_amount = 0.0
        self.transactions = 0
        self.refund_count = 0
        self.items = 0.0

    def freeze(self, key: str) -> AggregatedBucket:
        return AggregatedBucket(
            key=key,
            amount=self.amount,
            refund_amount=self.refund_amount,
            transactions=self.transactions,
            refund_count=self.refund_count,
            items=self.items,
        )


def _seed(now: date | datetime, period: ReportPeriod) -> dict[str, _Accumulator]:
    return {key: _Accumulator() for key in bucket_keys(now, period)}


def _freeze(buckets: dict[str, _Accumulator]) -> list[AggregatedBucket]:
    return [buckets[key].freeze(key) for key in sorted(buckets)]


def aggregate_sales(
    sales: Iterable[SaleRecord | dict] | None,
    period: ReportPeriod | str,
    now: date | datetime,
) -> list[AggregatedBucket]:
    """Fold sales into zero-filled calendar buckets for the window ending at ``now``.

    Args:
        sales: Raw or normalized sale records.
        period: ``week``, ``month`` or ``year``.
        now: End of the window (inclusive).

    Returns:
        One AggregatedBucket per calendar unit in the window, ascending.
    """
    period = parse_period(period)
    end = as_day(now)
    start = window_start(end, period)
    buckets = _seed(end, period)
    skipped = 0

    for sale in normalize_sales(sales):
        if sale.timestamp is None:
            skipped += 1
            continue
        day = to_utc_date(sale.timestamp)
        if not _in_window(day, start, end):
            continue
        acc = buckets[bucket_key(day, period)]
        if sale.is_refunded:
            acc.refund_amount += sale.amount
            acc.refund_count += 1
        else:
            acc.amount += sale.amount
            acc.transactions += 1
            acc.items += sale.units

    if skipped:
        logger.debug("Skipped %d sales with unparsable timestamps", skipped)
    return _freeze(buckets)


def aggregate_losses(
    losses: Iterable[LossRecord | dict] | None,
    period: ReportPeriod | str,
    now: date | datetime,
) -> list[AggregatedBucket]:
    """Loss value and incident count per bucket, zero-filled like sales."""
    period = parse_period(period)
    end = as_day(now)
    start = window_start(end, period)
    buckets = _seed(end, period)

    for loss in normalize_losses(losses):
        if loss.timestamp is None:
            continue
        day = to_utc_date(loss.timestamp)
        if not _in_window(day, start, end):
            continue
        acc = buckets[bucket_key(day, period)]
        acc.amount += loss.value
        acc.transactions += 1
        acc.items += loss.quantity

    return _freeze(buckets)


def window_totals(
    sales: Iterable[SaleRecord | dict] | None,
    period: ReportPeriod | str,
    now: date | datetime,
) -> SalesTotals:
    """Gross sales, refunds and net sales over one window.

    Refunds are netted against gross sales from the same window only, so
    ``net_sales`` always compares like with like.
    """
    buckets = aggregate_sales(sales, period, now)
    return SalesTotals(
        start=window_start(now, period).isoformat(),
        end=as_day(now).isoformat(),
        gross_sales=sum(b.amount for b in buckets),
        refunds=sum(b.refund_amount for b in buckets),
        transactions=sum(b.transactions for b in buckets),
        refund_count=sum(b.refund_count for b in buckets),
    )


def daily_sales_log(sales: Iterable[SaleRecord | dict] | None) -> list[AggregatedBucket]:
    """Per-day totals for the days that have sales, with no window or gap-filling."""
    buckets: dict[str, _Accumulator] = {}
    for sale in normalize_sales(sales):
        if sale.timestamp is None:
            continue
        key = to_utc_date(sale.timestamp).isoformat()
        acc = buckets.setdefault(key, _Accumulator())
        if sale.is_refunded:
            acc.refund_amount += sale.amount
            acc.refund_count += 1
        else:
            acc.amount += sale.amount
            acc.transactions += 1
            acc.items += sale.units
    return _freeze(buckets)
