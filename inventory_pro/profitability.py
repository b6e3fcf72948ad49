"""Profitability analysis.

Joins sale line items to inventory cost data:

    profit  = (price - cost_price) × quantity_sold
    margin% = (price - cost_price) / cost_price × 100

``price`` is the inventory item's current sale price. Items without a
usable cost price are left out of every profit and margin figure (they are
not counted as zero-profit) and are listed in ``items_missing_cost`` so the
dashboard can prompt for cost entry.

The average margin is the plain mean of line-item margins: every line
item that could be priced counts once, regardless of its revenue. A
revenue-weighted margin would favour big-ticket items; the dashboard
reports the simple mean and labels it as such.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime

from .models import (
    InventoryItem,
    ProfitabilityRecord,
    ProfitabilityReport,
    ProfitTrendPoint,
    ProfitType,
    SaleRecord,
)
from .normalizer import coerce_number, normalize_inventory, normalize_sales, to_utc_date
from .time_buckets import (
    ReportPeriod,
    as_day,
    bucket_key,
    bucket_keys,
    parse_period,
    window_start,
)

logger = logging.getLogger("inventory_pro.profitability")

DEFAULT_TOP_PROFITABLE = 5


class _ProfitAccumulator:
    __slots__ = ("name", "quantity", "revenue", "profit", "margin_sum", "lines")

    def __init__(self, name: str) -> None:
        self.name = name
        self.quantity = 0.0
        self.revenue = 0.0
        self.profit = 0.0
        self.margin_sum = 0.0
        self.lines = 0

    def add(self, quantity: float, revenue: float, profit: float, margin: float) -> None:
        self.quantity += quantity
        self.revenue += revenue
        self.profit += profit
        self.margin_sum += margin
        self.lines += 1

    def freeze(self, total_profit: float) -> ProfitabilityRecord:
        return ProfitabilityRecord(
            name=self.name,
            quantity_sold=self.quantity,
            revenue=self.revenue,
            profit=self.profit,
            margin_pct=self.margin_sum / self.lines if self.lines else 0.0,
            percentage=self.profit / total_profit * 100 if total_profit > 0 else 0.0,
        )


def unit_profit(item: InventoryItem) -> tuple[float, float] | None:
    """(profit per unit, margin %) for an item, or None without cost data."""
    if not item.has_cost_data:
        return None
    per_unit = item.price - item.cost_price
    return per_unit, per_unit / item.cost_price * 100


def analyze_profitability(
    sales: Iterable[SaleRecord | dict] | None,
    inventory: Iterable[InventoryItem | dict] | None,
    top_n: int = DEFAULT_TOP_PROFITABLE,
) -> ProfitabilityReport:
    """Profit per product and per category for the given snapshot.

    Refunded sales are skipped. Line items whose product is unknown to the
    inventory, or whose inventory item has no cost price, are not priced.

    Returns:
        ProfitabilityReport with products and categories sorted by profit
        (descending, stable) and the top ``top_n`` products.
    """
    items = normalize_inventory(inventory)
    by_id = {item.id: item for item in items}
    missing_cost = tuple(item.name for item in items if not item.has_cost_data)

    products: dict[str, _ProfitAccumulator] = {}
    categories: dict[str, _ProfitAccumulator] = {}
    total_profit = 0.0
    margin_sum = 0.0
    priced_lines = 0

    for sale in normalize_sales(sales):
        if sale.is_refunded:
            continue
        for line in sale.items:
            item = by_id.get(line.product_id)
            if item is None:
                continue
            per_unit = unit_profit(item)
            if per_unit is None:
                continue
            profit = per_unit[0] * line.quantity
            margin = per_unit[1]

            products.setdefault(item.id, _ProfitAccumulator(item.name)).add(
                line.quantity, line.subtotal, profit, margin
            )
            categories.setdefault(item.category, _ProfitAccumulator(item.category)).add(
                line.quantity, line.subtotal, profit, margin
            )
            total_profit += profit
            margin_sum += margin
            priced_lines += 1

    product_records = [acc.freeze(total_profit) for acc in products.values()]
    category_records = [acc.freeze(total_profit) for acc in categories.values()]
    product_records.sort(key=lambda r: r.profit, reverse=True)
    category_records.sort(key=lambda r: r.profit, reverse=True)

    logger.info(
        "Profitability: %d priced line items across %d products (%d items missing cost)",
        priced_lines,
        len(product_records),
        len(missing_cost),
    )

    return ProfitabilityReport(
        total_profit=total_profit,
        average_margin_pct=margin_sum / priced_lines if priced_lines else 0.0,
        products=tuple(product_records),
        categories=tuple(category_records),
        top_products=tuple(product_records[: max(top_n, 0)]),
        total_items=len(items),
        items_with_cost=len(items) - len(missing_cost),
        items_missing_cost=missing_cost,
        line_items_priced=priced_lines,
    )


def profit_trend(
    sales: Iterable[SaleRecord | dict] | None,
    inventory: Iterable[InventoryItem | dict] | None,
    period: ReportPeriod | str,
    now: date | datetime,
) -> list[ProfitTrendPoint]:
    """Daily (or monthly, for ``year``) profit next to gross sales."""
    period = parse_period(period)
    by_id = {item.id: item for item in normalize_inventory(inventory)}
    start = window_start(now, period)
    end = as_day(now)
    points = {key: [0.0, 0.0] for key in bucket_keys(now, period)}

    for sale in normalize_sales(sales):
        if sale.is_refunded or sale.timestamp is None:
            continue
        day = to_utc_date(sale.timestamp)
        if not start <= day <= end:
            continue
        acc = points[bucket_key(day, period)]
        acc[1] += sale.amount
        for line in sale.items:
            item = by_id.get(line.product_id)
            per_unit = unit_profit(item) if item is not None else None
            if per_unit is not None:
                acc[0] += per_unit[0] * line.quantity

    return [
        ProfitTrendPoint(key=key, profit=profit, sales=total)
        for key, (profit, total) in sorted(points.items())
    ]


def suggested_price(
    cost: object,
    margin: object,
    profit_type: ProfitType | str = ProfitType.PERCENTAGE,
) -> float | None:
    """Sale price for a cost and markup, rounded to cents.

    Percentage markup: ``cost × (1 + margin / 100)``. Fixed markup:
    ``cost + margin``. Returns None when either input is not a number.
    """
    cost_value = coerce_number(cost, default=float("nan"))
    margin_value = coerce_number(margin, default=float("nan"))
    if cost_value != cost_value or margin_value != margin_value:
        return None
    try:
        kind = ProfitType(profit_type)
    except ValueError:
        return None
    if kind is ProfitType.PERCENTAGE:
        price = cost_value * (1 + margin_value / 100)
    else:
        price = cost_value + margin_value
    return round(price, 2)
