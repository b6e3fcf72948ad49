"""Heuristic business insights.

Turns the aggregates from :mod:`inventory_pro.category_mix` and
:mod:`inventory_pro.time_buckets` into short observations for the
dashboard. The generator never looks at raw records.

Rules are evaluated independently and in a fixed order; any subset may
fire:

1. Category concentration: the category holding the largest share of
   inventory value.
2. Restock: how many items carry the "Low Stock" status.
3. Best seller: the top product by units sold.
4. Trend: the last two buckets of the sales trend. A change inside
   ±TREND_CHANGE_THRESHOLD_PCT reports nothing.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime

from .category_mix import count_by_status, summarize_categories, top_selling_products
from .models import (
    AggregatedBucket,
    CategorySummary,
    Insight,
    InsightKind,
    InventoryItem,
    ProductSales,
    SaleRecord,
)
from .time_buckets import ReportPeriod, aggregate_sales

# A day-over-day (or month-over-month) sales move smaller than this is noise.
TREND_CHANGE_THRESHOLD_PCT = 10.0

# The trend rule compares the latest bucket to the one before it.
MIN_TREND_POINTS = 2

LOW_STOCK_STATUS = "Low Stock"


def _concentration(categories: Sequence[CategorySummary]) -> Insight | None:
    if not categories:
        return None
    top = categories[0]
    if top.percentage <= 0:
        return None
    return Insight(
        kind=InsightKind.CATEGORY_CONCENTRATION,
        text=(
            f"Your inventory is heavily weighted towards {top.name} at "
            f"{top.percentage:.1f}% of total inventory value."
        ),
        facts={"category": top.name, "percentage": top.percentage, "value": top.value},
    )


def _restock(status_counts: Mapping[str, int]) -> Insight | None:
    low_stock = status_counts.get(LOW_STOCK_STATUS, 0)
    if low_stock <= 0:
        return None
    return Insight(
        kind=InsightKind.RESTOCK,
        text=(
            f"{low_stock} products are currently at low stock levels "
            f"and should be reordered soon."
        ),
        facts={"low_stock_count": low_stock},
    )


def _best_seller(top_products: Sequence[ProductSales]) -> Insight | None:
    if not top_products:
        return None
    top = top_products[0]
    return Insight(
        kind=InsightKind.BEST_SELLER,
        text=f"{top.name} is your best-selling product with {top.quantity:g} units sold.",
        facts={"product": top.name, "quantity": top.quantity, "revenue": top.revenue},
    )


def trend_change_pct(trend: Sequence[AggregatedBucket]) -> float | None:
    """Percent change between the last two buckets, or None when undefined."""
    if len(trend) < MIN_TREND_POINTS:
        return None
    previous = trend[-2].amount
    latest = trend[-1].amount
    if previous <= 0:
        return None
    return (latest - previous) / previous * 100


def _trend(trend: Sequence[AggregatedBucket]) -> Insight | None:
    change = trend_change_pct(trend)
    if change is None:
        return None
    facts = {
        "change_pct": change,
        "latest": trend[-1].amount,
        "previous": trend[-2].amount,
    }
    if change > TREND_CHANGE_THRESHOLD_PCT:
        return Insight(
            kind=InsightKind.TREND_UP,
            text=f"Sales are trending up by {change:.1f}% compared to the previous period.",
            facts=facts,
        )
    if change < -TREND_CHANGE_THRESHOLD_PCT:
        return Insight(
            kind=InsightKind.TREND_DOWN,
            text=f"Sales are down by {abs(change):.1f}% compared to the previous period.",
            facts=facts,
        )
    return None


def generate_insights(
    categories: Sequence[CategorySummary] | None = None,
    status_counts: Mapping[str, int] | None = None,
    top_products: Sequence[ProductSales] | None = None,
    trend: Sequence[AggregatedBucket] | None = None,
) -> list[Insight]:
    """Evaluate every rule against pre-computed aggregates.

    Missing aggregates simply disable the rules that need them.
    """
    candidates = (
        _concentration(categories or ()),
        _restock(status_counts or {}),
        _best_seller(top_products or ()),
        _trend(trend or ()),
    )
    return [insight for insight in candidates if insight is not None]


def build_dashboard_insights(
    sales: Sequence[SaleRecord | dict] | None,
    inventory: Sequence[InventoryItem | dict] | None,
    period: ReportPeriod | str,
    now: date | datetime,
) -> list[Insight]:
    """Aggregate a raw snapshot and generate its insights in one call."""
    return generate_insights(
        categories=summarize_categories(inventory),
        status_counts=count_by_status(inventory),
        top_products=top_selling_products(sales),
        trend=aggregate_sales(sales, period, now),
    )
