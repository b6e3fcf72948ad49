"""Category, product, cashier, loss and refund roll-ups.

Each function groups one normalized slice by a natural key and returns
frozen summaries. Groups keep first-seen order and every ranking uses a
stable sort, so ties resolve by insertion order and repeated runs over
the same snapshot return identical lists.

Example:
    summarize_categories([
        {"id": 1, "category": "A", "price": 10, "stock": 5},
        {"id": 2, "category": "B", "price": 5, "stock": 10},
    ])
    # -> [CategorySummary(name="A", value=50, percentage=50),
    #     CategorySummary(name="B", value=50, percentage=50)]
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import (
    CashierSummary,
    CategorySummary,
    GroupTotal,
    InventoryItem,
    LossRecord,
    LossSummary,
    ProductSales,
    RefundSummary,
    SaleRecord,
)
from .normalizer import UNKNOWN, normalize_inventory, normalize_losses, normalize_sales

DEFAULT_TOP_PRODUCTS = 10
DEFAULT_TOP_LOSS_ITEMS = 5


def _share(value: float, total: float) -> float:
    return value / total * 100 if total > 0 else 0.0


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


def summarize_categories(
    items: Iterable[InventoryItem | dict] | None,
) -> list[CategorySummary]:
    """Inventory value per category, largest first.

    ``value`` is ``price × stock``; ``percentage`` is the category's share
    of the summed value of the items passed in (0 when that total is 0).
    """
    groups: dict[str, list[float]] = {}
    for item in normalize_inventory(items):
        count_value = groups.setdefault(item.category, [0, 0.0])
        count_value[0] += 1
        count_value[1] += item.stock_value

    total = sum(value for _, value in groups.values())
    summaries = [
        CategorySummary(
            name=name,
            count=int(count),
            value=value,
            percentage=_share(value, total),
        )
        for name, (count, value) in groups.items()
    ]
    summaries.sort(key=lambda s: s.value, reverse=True)
    return summaries


def count_by_status(items: Iterable[InventoryItem | dict] | None) -> dict[str, int]:
    counts: dict[str, int] = {}
    for item in normalize_inventory(items):
        counts[item.status] = counts.get(item.status, 0) + 1
    return counts


def low_stock_items(items: Iterable[InventoryItem | dict] | None) -> list[InventoryItem]:
    """Items whose stock is at or below their reorder threshold."""
    return [item for item in normalize_inventory(items) if item.is_low_stock]


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------


def top_selling_products(
    sales: Iterable[SaleRecord | dict] | None,
    limit: int = DEFAULT_TOP_PRODUCTS,
) -> list[ProductSales]:
    """Best sellers by units sold. Refunded sales are not counted."""
    products: dict[str, dict] = {}
    for sale in normalize_sales(sales):
        if sale.is_refunded:
            continue
        for line in sale.items:
            entry = products.setdefault(
                line.product_id,
                {"name": line.name, "quantity": 0.0, "revenue": 0.0},
            )
            entry["quantity"] += line.quantity
            entry["revenue"] += line.subtotal

    ranked = [
        ProductSales(product_id=pid, **entry) for pid, entry in products.items()
    ]
    ranked.sort(key=lambda p: p.quantity, reverse=True)
    return ranked[: max(limit, 0)]


def summarize_cashiers(sales: Iterable[SaleRecord | dict] | None) -> list[CashierSummary]:
    """Completed-sale totals per cashier, in first-seen order."""
    cashiers: dict[str, list[float]] = {}
    for sale in normalize_sales(sales):
        stats = cashiers.setdefault(sale.cashier, [0.0, 0])
        if not sale.is_refunded:
            stats[0] += sale.amount
            stats[1] += 1
    return [
        CashierSummary(cashier=name, amount=amount, transactions=int(count))
        for name, (amount, count) in cashiers.items()
    ]


# ---------------------------------------------------------------------------
# Losses
# ---------------------------------------------------------------------------


def _group(rows: Iterable[tuple[str, float, float]]) -> list[GroupTotal]:
    groups: dict[str, list[float]] = {}
    for name, quantity, value in rows:
        acc = groups.setdefault(name, [0, 0.0, 0.0])
        acc[0] += 1
        acc[1] += quantity
        acc[2] += value
    return [
        GroupTotal(name=name, count=int(count), quantity=quantity, value=value)
        for name, (count, quantity, value) in groups.items()
    ]


def summarize_losses(
    losses: Iterable[LossRecord | dict] | None,
    top_n: int = DEFAULT_TOP_LOSS_ITEMS,
) -> LossSummary:
    """Loss totals, the most frequently lost items and the reason mix."""
    records = normalize_losses(losses)
    items = _group((r.item_name, r.quantity, r.value) for r in records)
    reasons = _group((r.reason, r.quantity, r.value) for r in records)
    items.sort(key=lambda g: g.count, reverse=True)
    reasons.sort(key=lambda g: g.count, reverse=True)
    return LossSummary(
        loss_count=len(records),
        total_value=sum(r.value for r in records),
        top_items=tuple(items[: max(top_n, 0)]),
        reasons=tuple(reasons),
    )


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------


def summarize_refunds(sales: Iterable[SaleRecord | dict] | None) -> RefundSummary:
    """Refunded transactions grouped by refund date, user and product."""
    refunds = [s for s in normalize_sales(sales) if s.is_refunded]

    def _refund_day(sale: SaleRecord) -> str:
        return sale.refund_date.date().isoformat() if sale.refund_date else UNKNOWN

    by_product: dict[str, list[float]] = {}
    for sale in refunds:
        for line in sale.items:
            acc = by_product.setdefault(line.name, [0, 0.0, 0.0])
            acc[0] += 1
            acc[1] += line.quantity
            acc[2] += line.subtotal

    return RefundSummary(
        refund_count=len(refunds),
        total_refunded=sum(s.amount for s in refunds),
        by_date=tuple(_group((_refund_day(s), s.units, s.amount) for s in refunds)),
        by_user=tuple(
            _group((s.refunded_by or UNKNOWN, s.units, s.amount) for s in refunds)
        ),
        by_product=tuple(
            GroupTotal(name=name, count=int(c), quantity=q, value=v)
            for name, (c, q, v) in by_product.items()
        ),
    )
